"""Run the admission service with uvicorn: ``python -m admission``."""

import uvicorn

from admission.core.config import settings


def main() -> None:
    uvicorn.run(
        "admission.main:app",
        host=settings.app.host,
        port=settings.app.port,
        log_level=settings.log.level.lower(),
        # client IPs key the counters, so trust X-Forwarded-For from known proxies only
        proxy_headers=True,
        forwarded_allow_ips=settings.app.forwarded_allow_ips,
        # a single worker keeps one set of in-memory counters
        workers=1,
    )


if __name__ == "__main__":
    main()
