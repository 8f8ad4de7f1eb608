"""Reviews endpoint.

GET  /api/reviews?user_id=<uuid>             reviews a member has received
POST /api/reviews {deal_id, rating, comment} rate the other party of a deal
"""

from src.models.review import ReviewCreate
from src.services import reviews
from src.utils.errors import ValidationFailedError
from src.utils.http import JSONRequestHandler, run_async


class handler(JSONRequestHandler):

    def do_GET(self):
        def body():
            user_id = self._authenticate()
            target = self._query().get("user_id") or user_id
            return {"reviews": [r.model_dump(mode="json") for r in run_async(reviews.list_reviews_for_user(target))]}
        self._dispatch(body)

    def do_POST(self):
        def body():
            user_id = self._authenticate()
            data = self._read_json()
            deal_id = data.pop("deal_id", None)
            if not deal_id:
                raise ValidationFailedError("deal_id is required")
            return run_async(reviews.submit_review(deal_id, user_id, ReviewCreate(**data)))
        self._dispatch(body, success_status=201)
