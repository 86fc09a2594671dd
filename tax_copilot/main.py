"""
Server entry point: ``tax-copilot`` or ``python -m tax_copilot.main``.
"""

import uvicorn

from tax_copilot.config.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "tax_copilot.api.app:app",
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.logging.log_level.lower(),
    )


if __name__ == "__main__":
    main()
