"""
Lancement local: python -m storefront

- HOST / PORT: adresse d'écoute (0.0.0.0:8080)
- UVICORN_RELOAD=1: rechargement auto en dev
- LOG_LEVEL: niveau de logs uvicorn (info)
"""
import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "storefront.asgi:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8080)),
        reload=os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes"),
        log_level=os.environ.get("LOG_LEVEL", "info"),
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
