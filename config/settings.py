from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Watched wallet (base58 public key)
    target_wallet: str = ""

    # Solana RPC (HTTP) + WebSocket for logsSubscribe
    rpc_url: str = ""
    wss_url: str = ""
    commitment: Literal["confirmed", "finalized"] = "confirmed"
    rpc_max_rps: float = 10.0
    rpc_timeout_sec: float = 15.0
    tx_fetch_retries: int = 2  # re-poll getTransaction when the RPC has not indexed it yet

    # Processing workers (1 = strict notification order)
    tx_workers: int = 4
    tx_queue_size: int = 1000

    # Token metadata
    metadata_retry_after_sec: float = 300.0  # retry window after a failed metadata fetch
    duplicate_mint_policy: Literal["last", "sum"] = "last"

    # DexScreener USD price lookup (optional, free, no key)
    enable_price_lookup: bool = False
    dexscreener_max_rps: float = 4.0

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    def missing_required(self) -> list[str]:
        """Names of required env vars that are empty."""
        required = {
            "TARGET_WALLET": self.target_wallet,
            "RPC_URL": self.rpc_url,
            "WSS_URL": self.wss_url,
        }
        return [name for name, value in required.items() if not value]


settings = Settings()
