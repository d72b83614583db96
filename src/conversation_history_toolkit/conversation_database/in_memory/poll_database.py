"""In-memory 'PollDatabase' backend."""

from conversation_history_toolkit.conversation_database.data_models.poll import Poll, PollDatabase


class InMemoryPollDatabase(PollDatabase):
    def __init__(self, polls: list[Poll] | None = None) -> None:
        self._polls: dict[str, Poll] = {poll.id: poll.model_copy(deep=True) for poll in polls or []}

    async def get_poll(self, poll_id: str) -> Poll | None:
        poll = self._polls.get(poll_id)
        return poll.model_copy(deep=True) if poll else None

    async def find_poll_by_conversation_id(self, conversation_id: str) -> Poll | None:
        for poll in self._polls.values():
            if poll.conversation_id == conversation_id:
                return poll.model_copy(deep=True)
        return None

    async def create_poll(self, poll: Poll) -> Poll:
        if poll.id in self._polls:
            raise ValueError(f"Poll with id {poll.id} already exists")
        self._polls[poll.id] = poll.model_copy(deep=True)
        return poll.model_copy(deep=True)

    async def delete_poll(self, poll_id: str) -> None:
        self._polls.pop(poll_id, None)
