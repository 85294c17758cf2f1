import warnings
from abc import ABC, abstractmethod


class TrainingSetWarning(UserWarning):
    """Training split is degenerate but the analysis can still run."""


class Notify(ABC):
    @abstractmethod
    def info(self, message: str):
        pass

    @abstractmethod
    def warning(self, message: str):
        pass

    @abstractmethod
    def error(self, message: str):
        pass

    def progress(self, done: int, total: int):
        """Called after each grown forest. Silent by default."""


class NotifyCeleryTask(Notify):
    # progress window reserved for growing forests, the rest is I/O
    START, END = 10, 90

    def __init__(self, notifier):
        self.notifier = notifier
        self.current = self.START

    def _update(self, message: str, **extra):
        if self.notifier:
            self.notifier.update_state(
                state="PROCESSING",
                meta={"status": message, "progress": self.current, **extra},
            )

    def info(self, message: str):
        self._update(message)

    def warning(self, message: str):
        self._update(f"Warning: {message}", warning=message)

    def error(self, message: str):
        self._update(f"Error: {message}", error=message)

    def progress(self, done: int, total: int):
        self.current = self.START + int((self.END - self.START) * done / total)
        self._update(f"Grown {done}/{total} forests")


class NotifyPrint(Notify):
    def info(self, message: str):
        print(message)

    def warning(self, message: str):
        warnings.warn(message, TrainingSetWarning, stacklevel=3)

    def error(self, message: str):
        print(f"Error: {message}")
