import uvicorn

from .config import settings


def main():
    uvicorn.run(
        "recipehub.app:app",
        host="127.0.0.1",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
