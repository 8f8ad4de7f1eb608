"""Health check endpoint: GET/POST /api/health.

Does not touch the database; reports whether Supabase credentials are set
so a misconfigured deployment shows up without a failing request.
"""

from src.services.supabase_client import is_configured
from src.utils.http import JSONRequestHandler


class handler(JSONRequestHandler):

    def do_GET(self):
        def body():
            return {
                "status": "ok",
                "service": self.service_name,
                "supabase_configured": is_configured(),
            }
        self._dispatch(body)

    def do_POST(self):
        self.do_GET()
