from .main import cli, main, parse_args

__all__ = ["cli", "main", "parse_args"]
