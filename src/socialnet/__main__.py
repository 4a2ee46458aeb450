import uvicorn

from .config import settings


def main() -> None:
    uvicorn.run("socialnet.api:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
