"""Allow ``python -m http_to_ws``."""

from http_to_ws.app.main import cli

if __name__ == "__main__":
    raise SystemExit(cli())
