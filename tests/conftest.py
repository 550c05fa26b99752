from __future__ import annotations

import pytest

from jobly.core.config import get_settings
from jobly.core.security import create_access_token


@pytest.fixture
def admin_headers() -> dict[str, str]:
    token = create_access_token(username="admin", is_admin=True, settings=get_settings())
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers() -> dict[str, str]:
    token = create_access_token(username="user", is_admin=False, settings=get_settings())
    return {"Authorization": f"Bearer {token}"}
