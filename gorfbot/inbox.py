"""
Inbound event queues shared by the Slack listener and the dispatcher.
"""

import queue
import threading
from typing import Optional, Union

from .models import Message, Reaction


class Inbox:
    """
    Two independent queues, one for messages and one for reactions.

    The listener thread puts events on either queue. The dispatcher takes
    one event at a time from whichever queue has one, so events are ordered
    within each queue but not between them.
    """

    def __init__(self):
        self.messages: queue.Queue = queue.Queue()
        self.reactions: queue.Queue = queue.Queue()
        # One permit per queued event, across both queues
        self._pending = threading.Semaphore(0)
        self._prefer_reactions = False

    def put_message(self, message: Message) -> None:
        self.messages.put(message)
        self._pending.release()

    def put_reaction(self, reaction: Reaction) -> None:
        self.reactions.put(reaction)
        self._pending.release()

    def get(self, timeout: Optional[float] = None) -> Optional[Union[Message, Reaction]]:
        """
        Wait for the next event from either queue.

        Only one consumer may call get(). Alternates which queue is tried
        first so a busy queue can't starve the other.

        Returns:
            The next Message or Reaction, or None if timeout expired
        """
        if not self._pending.acquire(timeout=timeout):
            return None

        first, second = self.messages, self.reactions
        if self._prefer_reactions:
            first, second = second, first
        self._prefer_reactions = not self._prefer_reactions

        try:
            return first.get_nowait()
        except queue.Empty:
            return second.get_nowait()
