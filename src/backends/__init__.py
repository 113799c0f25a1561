"""Backend access for Strapi servers.

Each module here talks to a backend or processes its data:
- HTTP dispatch with bracket-encoded queries
- Image conversion with Pillow
- Content-type schema checks for write bodies
"""

from backends.dispatcher import BackendDispatcher
from backends.query import encode_query

__all__ = ["BackendDispatcher", "encode_query"]
