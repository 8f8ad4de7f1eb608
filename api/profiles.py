"""Profiles endpoint.

GET   /api/profiles                 own profile with badges
GET   /api/profiles?id=<uuid>       public profile with badges and reviews
POST  /api/profiles {username, full_name}   first-run setup
PATCH /api/profiles {...fields}     edit own profile
"""

from src.models.profile import ProfileUpdate
from src.services import badges, profiles
from src.utils.errors import ValidationFailedError
from src.utils.http import JSONRequestHandler, run_async


class handler(JSONRequestHandler):

    def do_GET(self):
        def body():
            user_id = self._authenticate()
            target = self._query().get("id")
            if target and target != user_id:
                return run_async(profiles.get_public_profile(target))
            profile = run_async(profiles.get_profile(user_id))
            held = run_async(badges.list_badges(user_id))
            return {
                "profile": profile.model_dump(mode="json"),
                "badges": [b.to_display() for b in held],
            }
        self._dispatch(body)

    def do_POST(self):
        def body():
            user_id = self._authenticate()
            data = self._read_json()
            if not data.get("username"):
                raise ValidationFailedError("username is required")
            profile = run_async(profiles.setup_profile(user_id, data["username"], data.get("full_name")))
            return {"profile": profile.model_dump(mode="json")}
        self._dispatch(body)

    def do_PATCH(self):
        def body():
            user_id = self._authenticate()
            update = ProfileUpdate(**self._read_json())
            profile = run_async(profiles.update_profile(user_id, update))
            return {"profile": profile.model_dump(mode="json")}
        self._dispatch(body)
