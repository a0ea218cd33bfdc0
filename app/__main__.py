import uvicorn

from app.config.settings import server_settings


def run() -> None:
    uvicorn.run("app.main:app", host=server_settings.host, port=server_settings.port, reload=False)


if __name__ == "__main__":
    run()
