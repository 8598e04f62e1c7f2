import uvicorn

from serafina_chat.core.settings import SETTINGS


def main() -> None:
    uvicorn.run(
        "serafina_chat.main:app",
        host=SETTINGS.host,
        port=SETTINGS.port,
        log_level=SETTINGS.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
