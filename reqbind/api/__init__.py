from .dependency import RequestDecoder, read_body, starlette_path_vars

__all__ = [
    "RequestDecoder",
    "read_body",
    "starlette_path_vars",
]
