"""Messages endpoint.

GET   /api/messages                                   inbox with unread count
GET   /api/messages?conversation_id=<uuid>            one thread, oldest first
POST  /api/messages {receiver_id, subject, message, request_id}   contact a member
POST  /api/messages {conversation_id, message}        reply in a thread
PATCH /api/messages {message_id}                      mark read
"""

from src.services import messaging
from src.utils.errors import ValidationFailedError
from src.utils.http import JSONRequestHandler, run_async


class handler(JSONRequestHandler):

    def do_GET(self):
        def body():
            user_id = self._authenticate()
            conversation_id = self._query().get("conversation_id")
            if conversation_id:
                thread = run_async(messaging.list_conversation_messages(conversation_id, user_id))
                return {"messages": [m.model_dump(mode="json") for m in thread]}
            return run_async(messaging.list_inbox(user_id))
        self._dispatch(body)

    def do_POST(self):
        def body():
            user_id = self._authenticate()
            data = self._read_json()
            if data.get("conversation_id"):
                message = run_async(messaging.reply(data["conversation_id"], user_id, data.get("message", "")))
            elif data.get("receiver_id"):
                message = run_async(messaging.send_message(
                    user_id,
                    data["receiver_id"],
                    data.get("subject", ""),
                    data.get("message", ""),
                    data.get("request_id"),
                ))
            else:
                raise ValidationFailedError("receiver_id or conversation_id is required")
            return {"message": message.model_dump(mode="json")}
        self._dispatch(body, success_status=201)

    def do_PATCH(self):
        def body():
            user_id = self._authenticate()
            message_id = self._read_json().get("message_id")
            if not message_id:
                raise ValidationFailedError("message_id is required")
            message = run_async(messaging.mark_read(message_id, user_id))
            return {"message": message.model_dump(mode="json")}
        self._dispatch(body)
