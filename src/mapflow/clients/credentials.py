"""Bearer credential providers."""

from __future__ import annotations

import os

from mapflow.contracts.errors import CredentialError

TOKEN_ENV_VAR = "MAPFLOW_TOKEN"


class StaticCredentialProvider:
    """Hands out a fixed token."""

    def __init__(self, token: str | None) -> None:
        self._token = token

    def bearer_token(self) -> str:
        if not self._token:
            raise CredentialError("No bearer token configured")
        return self._token


class EnvironmentCredentialProvider:
    """Reads the token from an environment variable at call time."""

    def __init__(self, variable: str = TOKEN_ENV_VAR) -> None:
        self._variable = variable

    def bearer_token(self) -> str:
        token = os.environ.get(self._variable)
        if not token:
            raise CredentialError(f"Environment variable {self._variable} is not set")
        return token
