"""
Sample accumulator.

Buffers client samples between two sends and hands them out in batches.
"""

import logging
from typing import Callable, List, Optional

from .sampler import ClientSample
from .sdk.config_manager import AccumulatorConfig

BatchConsumer = Callable[[Optional[List[ClientSample]]], None]


class Accumulator:
    """FIFO buffer of client samples drained in bounded batches."""

    def __init__(self, config: Optional[AccumulatorConfig] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config or AccumulatorConfig()
        self.logger = logger or logging.getLogger(__name__)
        self._samples: List[ClientSample] = []

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def is_empty(self) -> bool:
        return not self._samples

    def add_client_sample(self, sample: ClientSample):
        self._samples.append(sample)

    def drain_to(self, consumer: BatchConsumer):
        """
        Hand every pending sample to ``consumer``.

        The buffer is emptied before the consumer runs, so samples are never
        handed out twice even when the consumer raises. With nothing pending
        the consumer is called once with None.
        """
        if not self._samples:
            consumer(None)
            return

        samples, self._samples = self._samples, []
        batch_size = self.config.max_samples_per_batch or len(samples)
        batches = [samples[i:i + batch_size] for i in range(0, len(samples), batch_size)]
        self.logger.debug(f"Draining {len(samples)} samples in {len(batches)} batches")
        for batch in batches:
            consumer(batch)

    def clear(self):
        self._samples.clear()
