from __future__ import annotations

import heapq
import random
from typing import Dict, List, Tuple

from rpsim.core.types import Message, NodeId

_Slot = Tuple[int, NodeId, NodeId, int, Message]


class NetworkModel:
    """In-flight control messages between simulated nodes.

    Each message waits ``base_delay`` ticks plus a seeded jitter draw, or is
    dropped with probability ``loss_prob``. A (src, dst) channel never
    reorders: a jittered message is held back until everything sent earlier
    on the same channel is due.
    """

    def __init__(
        self,
        base_delay: int = 1,
        jitter: int = 0,
        loss_prob: float = 0.0,
        seed: int = 0,
    ) -> None:
        self.base_delay = max(1, int(base_delay))
        self.jitter = max(0, int(jitter))
        self.loss_prob = min(1.0, max(0.0, float(loss_prob)))
        self.rng = random.Random(seed)
        self.delivered_messages = 0
        self.dropped_messages = 0
        self._queue: List[_Slot] = []
        self._last_due: Dict[Tuple[NodeId, NodeId], int] = {}

    def send(self, msg: Message, now_tick: int) -> None:
        if self.loss_prob and self.rng.random() < self.loss_prob:
            self.dropped_messages += 1
            return
        delay = self.base_delay + (self.rng.randint(0, self.jitter) if self.jitter else 0)
        channel = (msg.src, msg.dst)
        due = max(now_tick + delay, self._last_due.get(channel, 0))
        self._last_due[channel] = due
        heapq.heappush(self._queue, (due, msg.src, msg.dst, msg.seq, msg))

    def deliver(self, tick: int) -> List[Message]:
        """Messages due by ``tick``, ordered by (src, dst, seq)."""
        due: List[Message] = []
        while self._queue and self._queue[0][0] <= tick:
            due.append(heapq.heappop(self._queue)[-1])
        self.delivered_messages += len(due)
        return due

    @property
    def pending(self) -> int:
        return len(self._queue)
