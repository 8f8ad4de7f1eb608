"""Marketplace stats endpoint: GET /api/stats (per-user numbers when signed in)."""

from src.services import profiles
from src.utils.errors import AuthenticationError
from src.utils.http import JSONRequestHandler, run_async


class handler(JSONRequestHandler):

    def do_GET(self):
        def body():
            user_id = None
            if self.headers.get("Authorization"):
                try:
                    user_id = self._authenticate()
                except AuthenticationError:
                    user_id = None
            return run_async(profiles.marketplace_stats(user_id))
        self._dispatch(body)
