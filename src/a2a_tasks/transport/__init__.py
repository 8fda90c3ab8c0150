from .starlette import create_starlette_app

__all__ = ["create_starlette_app"]
