from fastapi import FastAPI, HTTPException

from markup_converter import __version__
from markup_converter.api import create_app
from markup_converter.settings import load_effective_config

try:
    app = create_app(require_enabled=True)
except RuntimeError:
    app = FastAPI(title="Markup Converter", version=__version__)

    @app.get("/")
    async def api_disabled() -> dict[str, str]:
        raise HTTPException(
            status_code=503,
            detail="Local API disabled. Enable by setting enable_local_api = true in config.toml",
        )


if __name__ == "__main__":
    import uvicorn

    api_config = load_effective_config().api
    uvicorn.run(app, host=api_config.host, port=api_config.port)
