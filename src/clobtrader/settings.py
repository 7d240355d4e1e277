from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, SecretStr

DEFAULT_HOST = "https://clob.polymarket.com"
POLYGON_CHAIN_ID = 137
AMOY_CHAIN_ID = 80002


class BackendSettings(BaseModel):
    """Custodial mode: the client holds the wallet key."""

    private_key: SecretStr

    model_config = {"extra": "forbid"}


class FrontendSettings(BaseModel):
    """Externally-signed mode: signing is delegated to a caller-supplied signer."""

    signer: Any = None

    model_config = {"extra": "forbid", "arbitrary_types_allowed": True}


class BuilderSettings(BaseModel):
    key: SecretStr | None = None
    secret: SecretStr | None = None
    passphrase: SecretStr | None = None
    signing_server_url: str | None = None

    model_config = {"extra": "forbid"}


class ApiCredentials(BaseModel):
    api_key: SecretStr
    api_secret: SecretStr
    passphrase: SecretStr

    model_config = {"extra": "forbid"}


class TradingSettings(BaseModel):
    host: str = DEFAULT_HOST
    chain_id: int = POLYGON_CHAIN_ID
    backend: BackendSettings | None = None
    frontend: FrontendSettings | None = None
    builder: BuilderSettings | None = None
    api_credentials: ApiCredentials | None = None
    request_timeout: float | None = Field(default=None, gt=0)

    model_config = {"extra": "forbid"}


class Settings(BaseModel):
    env: str = "dev"
    trading: TradingSettings = Field(default_factory=TradingSettings)

    model_config = {"extra": "forbid"}

    def redacted(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", exclude={"trading": {"frontend"}})
        trading = data.get("trading", {})

        backend = trading.get("backend")
        if isinstance(backend, dict) and "private_key" in backend:
            backend["private_key"] = "***"

        for block_name in ("builder", "api_credentials"):
            block = trading.get(block_name)
            if not isinstance(block, dict):
                continue
            for key in ("key", "secret", "passphrase", "api_key", "api_secret"):
                if block.get(key) is not None:
                    block[key] = "***"

        if self.trading.frontend is not None:
            trading["frontend"] = {"signer": type(self.trading.frontend.signer).__name__}
        return data
