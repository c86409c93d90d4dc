"""HTTP primitives: headers and responses."""

from trill.http.headers import Headers, wants_json
from trill.http.response import Response

__all__ = ["Headers", "Response", "wants_json"]
