"""Entry point for `python -m shipwright` and the `shipwright` console script: serve the HTTP API."""
from .app import create_app
from .config import load_settings


def main() -> None:
    settings = load_settings()
    app = create_app(settings)
    print(f"shipwright API  →  http://{settings.host}:{settings.port}")
    print(f"   Project root  :  {settings.root}")
    app.run(host=settings.host, port=settings.port, debug=False)


if __name__ == "__main__":
    main()
