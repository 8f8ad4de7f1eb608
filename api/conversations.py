"""Conversations endpoint: GET /api/conversations lists the caller's threads."""

from src.services import messaging
from src.utils.http import JSONRequestHandler, run_async


class handler(JSONRequestHandler):

    def do_GET(self):
        def body():
            user_id = self._authenticate()
            return {"conversations": run_async(messaging.list_conversations(user_id))}
        self._dispatch(body)
