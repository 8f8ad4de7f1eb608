"""Request interests endpoint.

GET   /api/requests/interests?request_id=[&status=]   applicants (owner only)
POST  /api/requests/interests {request_id, message}   express interest
PATCH /api/requests/interests {interest_id, action}   accept | reject
"""

from src.models.interest import InterestStatus
from src.services import interests
from src.utils.errors import ValidationFailedError
from src.utils.http import JSONRequestHandler, run_async


class handler(JSONRequestHandler):

    def do_GET(self):
        def body():
            user_id = self._authenticate()
            query = self._query()
            if not query.get("request_id"):
                raise ValidationFailedError("request_id is required")
            status = self._enum_param(InterestStatus, query.get("status"))
            return {"interests": run_async(interests.list_interests(query["request_id"], user_id, status))}
        self._dispatch(body)

    def do_POST(self):
        def body():
            user_id = self._authenticate()
            data = self._read_json()
            if not data.get("request_id"):
                raise ValidationFailedError("request_id is required")
            interest = run_async(interests.express_interest(data["request_id"], user_id, data.get("message")))
            return {"interest": interest.model_dump(mode="json")}
        self._dispatch(body, success_status=201)

    def do_PATCH(self):
        def body():
            user_id = self._authenticate()
            data = self._read_json()
            interest_id, action = data.get("interest_id"), data.get("action")
            if not interest_id:
                raise ValidationFailedError("interest_id is required")
            if action == "accept":
                deal = run_async(interests.accept_interest(interest_id, user_id))
                return {"deal": deal.model_dump(mode="json")}
            if action == "reject":
                interest = run_async(interests.reject_interest(interest_id, user_id))
                return {"interest": interest.model_dump(mode="json")}
            raise ValidationFailedError("action must be 'accept' or 'reject'")
        self._dispatch(body)
