"""
Main entrypoint: FastAPI webhook server under uvicorn.

Settings are validated before the server starts; a missing signing key or
monitored address exits with status 1.

Env: ALCHEMY_WEBHOOK_SIGNING_KEY, SOLANA_ADDR, USDC_TOKEN_ADDRESS, SOLANA_NETWORK,
SOLANA_RPC_URL, API_HOST, PORT, LOG_LEVEL, LOG_FORMAT.

Equivalent: uvicorn backend_txwatch.api_server.app:app --host 0.0.0.0 --port 3000
"""

import os
import sys

# Configure structured JSON logging before other imports that may log
from backend_txwatch.txwatch_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Validate configuration, then run the API server in the main thread."""
    from backend_txwatch.config import get_settings
    from backend_txwatch.core.exceptions import ConfigurationError

    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.error("main_config_error", message=str(e))
        sys.exit(1)

    from backend_txwatch.api_server.server import create_app
    import uvicorn

    app = create_app(settings)
    logger.info(
        "main_server_starting",
        host=settings.api_host,
        port=settings.api_port,
        monitored_address=settings.monitored_address,
    )
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
