from __future__ import annotations

from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    _ = config
    for item in items:
        parts = Path(str(item.fspath)).parts
        if "tests" in parts and "unit" in parts:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(scope="session")
def server_private_key() -> rsa.RSAPrivateKey:
    # Key generation is slow; one key serves the whole run.
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)
