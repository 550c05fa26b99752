#!/usr/bin/env python3
"""Print a signed bearer token for local development and manual API testing."""

from __future__ import annotations

import argparse

from jobly.core.config import get_settings
from jobly.core.security import create_access_token


def render_token(*, username: str, is_admin: bool, secret_key: str | None, expires_minutes: int | None) -> str:
    settings = get_settings()
    if secret_key:
        settings = settings.model_copy(update={"secret_key": secret_key})
    return create_access_token(
        username=username,
        is_admin=is_admin,
        settings=settings,
        expires_minutes=expires_minutes,
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit a bearer token accepted by the jobly API.")
    parser.add_argument("--username", required=True, help="Username stored in the token subject")
    parser.add_argument(
        "--admin",
        action="store_true",
        help="Mark the token as admin so it can call mutating endpoints",
    )
    parser.add_argument(
        "--secret-key",
        default=None,
        help="Signing key; defaults to JOBLY_SECRET_KEY",
    )
    parser.add_argument(
        "--expires-minutes",
        type=int,
        default=None,
        help="Token lifetime; defaults to JOBLY_ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    args = parser.parse_args()

    print(
        render_token(
            username=args.username,
            is_admin=args.admin,
            secret_key=args.secret_key,
            expires_minutes=args.expires_minutes,
        )
    )


if __name__ == "__main__":
    main()
