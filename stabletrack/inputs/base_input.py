import abc
from typing import Iterator, Tuple

from stabletrack.utils.types import FramePacket


class BaseInput(abc.ABC):
    """Frame source for the tracking loop. Usable as a context manager."""

    @abc.abstractmethod
    def start(self) -> None:
        ...

    @abc.abstractmethod
    def stop(self) -> None:
        ...

    @abc.abstractmethod
    def frames(self) -> Iterator[Tuple[int, FramePacket]]:
        """Yield (frame_id, packet) with frame ids counting up from 1."""

    def describe(self) -> str:
        return type(self).__name__

    def __enter__(self) -> "BaseInput":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
