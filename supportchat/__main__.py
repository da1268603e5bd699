import uvicorn

from .config import get_settings


def main():
    settings = get_settings()
    uvicorn.run(
        "supportchat.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )


if __name__ == "__main__":
    main()
