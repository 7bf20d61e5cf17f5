# Copyright (c) 2025 Lakshya A Agrawal and the GEPA contributors
# https://github.com/gepa-ai/gepa

from collections import Counter
from collections.abc import Sequence
from typing import Any, TypeVar

from gepa_lite.core.rng import Xorshift32
from gepa_lite.proposer.base import BatchSampler

T = TypeVar("T")


class EpochShuffledBatchSampler(BatchSampler):
    """
    Epoch-based minibatch sampling:
    - Shuffle ids each epoch with the injected rng
    - Pad to a multiple of the minibatch size with the least frequent ids
    - ``iteration`` is the zero-based draw number
    """

    def __init__(self, minibatch_size: int, rng: Xorshift32 | None = None):
        if minibatch_size <= 0:
            raise ValueError(f"minibatch_size must be positive, got {minibatch_size}")
        self.minibatch_size = minibatch_size
        self.shuffled_ids: list[int] = []
        self.epoch = -1
        self.id_freqs: Counter[int] = Counter()
        self.rng = rng if rng is not None else Xorshift32(0)

    def _least_frequent_id(self, dataset_size: int) -> int:
        return min(range(dataset_size), key=lambda i: (self.id_freqs[i], i))

    def _update_shuffled(self, dataset_size: int) -> None:
        self.shuffled_ids = list(range(dataset_size))
        self.rng.shuffle(self.shuffled_ids)
        for i in self.shuffled_ids:
            self.id_freqs[i] += 1

        mod = dataset_size % self.minibatch_size
        num_to_pad = (self.minibatch_size - mod) if mod != 0 else 0
        for _ in range(num_to_pad):
            selected_id = self._least_frequent_id(dataset_size)
            self.shuffled_ids.append(selected_id)
            self.id_freqs[selected_id] += 1

    def next_minibatch_ids(self, dataset_size: int, iteration: int) -> list[int]:
        if dataset_size <= 0:
            raise ValueError("Cannot sample a minibatch from an empty dataset")

        base_idx = iteration * self.minibatch_size
        curr_epoch = 0 if self.epoch == -1 else base_idx // max(len(self.shuffled_ids), 1)
        if curr_epoch > self.epoch:
            self.epoch = curr_epoch
            self._update_shuffled(dataset_size)

        assert len(self.shuffled_ids) >= self.minibatch_size
        assert len(self.shuffled_ids) % self.minibatch_size == 0

        base_idx = base_idx % len(self.shuffled_ids)
        end_idx = base_idx + self.minibatch_size
        return self.shuffled_ids[base_idx:end_idx]

    def next_batch(self, data: Sequence[T], iteration: int) -> list[T]:
        return [data[i] for i in self.next_minibatch_ids(len(data), iteration)]

    def state_dict(self) -> dict[str, Any]:
        return {
            "shuffled_ids": list(self.shuffled_ids),
            "epoch": self.epoch,
            "id_freqs": [[i, n] for i, n in sorted(self.id_freqs.items())],
        }

    def load_state_dict(self, state: dict[str, Any]) -> None:
        self.shuffled_ids = [int(i) for i in state["shuffled_ids"]]
        self.epoch = int(state["epoch"])
        self.id_freqs = Counter({int(i): int(n) for i, n in state["id_freqs"]})
