"""Run the API with uvicorn: `python -m carpool`."""

import uvicorn

from carpool.core.config import settings


def main() -> None:
    uvicorn.run(
        "carpool.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
