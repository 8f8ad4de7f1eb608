"""Deals endpoint.

GET  /api/deals                           the caller's active deals
GET  /api/deals?request_id=<uuid>         pending deals on an own request
GET  /api/deals?id=<uuid>                 one deal (participants only)
POST /api/deals {deal_id, action, ...}    approve | reject | complete_prerequisite |
                                          complete_task | verify | request_cancellation |
                                          withdraw_cancellation | dispute | resolve_dispute
"""

from src.services import deals
from src.utils.errors import ValidationFailedError
from src.utils.http import JSONRequestHandler, run_async


class handler(JSONRequestHandler):

    def do_GET(self):
        def body():
            user_id = self._authenticate()
            query = self._query()
            if query.get("id"):
                deal = run_async(deals.get_deal(query["id"], user_id))
                return {"deal": deal.model_dump(mode="json")}
            if query.get("request_id"):
                return {"deals": run_async(deals.list_pending_deals(query["request_id"], user_id))}
            return {"deals": run_async(deals.list_active_deals(user_id))}
        self._dispatch(body)

    def do_POST(self):
        def body():
            user_id = self._authenticate()
            data = self._read_json()
            if not data.get("deal_id") or not data.get("action"):
                raise ValidationFailedError("deal_id and action are required")
            return run_async(deals.perform_action(data["deal_id"], user_id, data["action"], data))
        self._dispatch(body)
