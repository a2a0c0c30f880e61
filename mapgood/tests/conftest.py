"""
Service test configuration.

`mock_http` patches httpx.AsyncClient so adapters never touch the network.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest


@pytest.fixture
def mock_http():
    """
    Yields (client, response). Set response.json.return_value (or side_effects)
    before calling the adapter; inspect client.get.call_args afterwards.
    """
    response = MagicMock()
    response.status_code = 200
    response.raise_for_status = MagicMock()

    with patch("httpx.AsyncClient") as client_cls:
        client = AsyncMock()
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=None)
        client.get = AsyncMock(return_value=response)
        client_cls.return_value = client
        yield client, response
