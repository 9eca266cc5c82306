from abc import ABC, abstractmethod


class ChatChannel(ABC):
    """Where replies for the current turn are posted."""

    @abstractmethod
    def send(self, text: str) -> None:
        raise NotImplementedError
