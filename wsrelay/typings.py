import logging
from typing import Protocol, TypeVar, Union


LoggerLike = TypeVar('LoggerLike', bound=logging.Logger)


BytesLike = Union[bytes, bytearray, memoryview]


class TConnection(Protocol):

    id: str

    def send(self, data: bytes) -> bool:
        pass
