import uvicorn

from frontdesk.config import settings


def main() -> None:
    uvicorn.run(
        "frontdesk.app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=not settings.IS_PRODUCTION,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
