"""
mediconnect_access.api.__main__

Entrypoint for `python -m mediconnect_access.api` and the `mediconnect-access` script.

Client addresses recorded in the audit trail come from `request.client`, so uvicorn
is told which proxies may set `X-Forwarded-For`.
"""

from __future__ import annotations

import uvicorn

from mediconnect_access.api.app import create_app
from mediconnect_access.settings import get_settings


def main() -> None:
    settings = get_settings()

    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        proxy_headers=True,
        forwarded_allow_ips=settings.trusted_proxies,
        log_config=None,  # structlog owns the root logger
    )


if __name__ == "__main__":
    main()
