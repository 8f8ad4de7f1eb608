"""Marketplace requests endpoint.

GET    /api/requests?search=&category=     browse open requests
GET    /api/requests?mine=1[&status=]      the caller's own requests
GET    /api/requests?id=<uuid>             one request with owner details
POST   /api/requests                       post a request
DELETE /api/requests?id=<uuid>             delete an own request
"""

from src.models.request import RequestCreate, RequestStatus
from src.services import market_requests
from src.utils.errors import ValidationFailedError
from src.utils.http import JSONRequestHandler, run_async


class handler(JSONRequestHandler):

    def do_GET(self):
        def body():
            user_id = self._authenticate()
            query = self._query()
            if query.get("id"):
                return run_async(market_requests.get_request_detail(query["id"], user_id))
            if query.get("mine"):
                status = self._enum_param(RequestStatus, query.get("status"))
                rows = run_async(market_requests.list_user_requests(user_id, status))
            else:
                rows = run_async(market_requests.browse_requests(
                    search=query.get("search"),
                    category=query.get("category"),
                ))
            return {"requests": [r.model_dump(mode="json") for r in rows]}
        self._dispatch(body)

    def do_POST(self):
        def body():
            user_id = self._authenticate()
            data = RequestCreate(**self._read_json())
            request = run_async(market_requests.create_request(user_id, data))
            return {"request": request.model_dump(mode="json")}
        self._dispatch(body, success_status=201)

    def do_DELETE(self):
        def body():
            user_id = self._authenticate()
            request_id = self._query().get("id")
            if not request_id:
                raise ValidationFailedError("id is required")
            run_async(market_requests.delete_request(request_id, user_id))
            return {"ok": True}
        self._dispatch(body)
