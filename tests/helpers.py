from typing import Dict, List, Optional

from dealfeed.schemas import ChannelMessage, Chat, PhotoSize, Update

CHANNEL_ID = -1001234567890
CHANNEL_USERNAME = "salesahoclic"


def make_post(
    message_id: int,
    text: str = "Deal of the day $19.99 at Amazon",
    photo: bool = False,
    chat_id=CHANNEL_ID,
    username: Optional[str] = CHANNEL_USERNAME,
    date: int = 1_700_000_000,
) -> ChannelMessage:
    return ChannelMessage(
        message_id=message_id,
        text=text,
        chat=Chat(id=chat_id, username=username, type="channel"),
        date=date,
        photo=[
            PhotoSize(file_id=f"small-{message_id}", width=90, height=90),
            PhotoSize(file_id=f"large-{message_id}", width=800, height=800),
        ] if photo else None,
    )


class FakeBotApi:
    """Stands in for TelegramBotApi; records every call it receives."""

    def __init__(
        self,
        posts: Optional[List[ChannelMessage]] = None,
        chat_id=CHANNEL_ID,
        fail_chat: bool = False,
        fail_updates: bool = False,
        failing_files: Optional[set] = None,
    ):
        self.posts = posts or []
        self.chat_id = chat_id
        self.fail_chat = fail_chat
        self.fail_updates = fail_updates
        self.failing_files = failing_files or set()
        self.calls: Dict[str, int] = {"getChat": 0, "getUpdates": 0, "getFile": 0}
        self.update_offsets: List[Optional[int]] = []

    async def get_chat(self, chat_id):
        self.calls["getChat"] += 1
        if self.fail_chat:
            raise ConnectionError("getChat unreachable")
        return Chat(id=self.chat_id, username=CHANNEL_USERNAME)

    async def get_updates(self, offset=None, limit=100, allowed_updates=("channel_post",)):
        self.calls["getUpdates"] += 1
        self.update_offsets.append(offset)
        if self.fail_updates:
            raise ConnectionError("api.telegram.org unreachable")
        return [Update(update_id=i, channel_post=post) for i, post in enumerate(self.posts)]

    async def get_file_path(self, file_id):
        self.calls["getFile"] += 1
        if file_id in self.failing_files:
            raise ConnectionError(f"getFile failed for {file_id}")
        return f"photos/{file_id}.jpg"

    def file_url(self, file_path):
        return f"https://api.telegram.org/file/botTEST/{file_path}"


