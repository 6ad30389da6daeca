"""Background worker that runs a SunoBot batch off the GUI thread."""

import logging

from PyQt6.QtCore import QThread, pyqtSignal

from automation.errors import SunoBotError
from automation.models import Status

logger = logging.getLogger("sunobot.automation")


class BotWorker(QThread):
    """Runs ``SunoBot.run_batch`` in a QThread and relays its events as signals.

    The bot is built inside ``run()`` so the browser belongs to the worker
    thread.  ``bot_factory`` is called as ``bot_factory(config, status_callback)``.
    """
    status_event = pyqtSignal(dict)                # raw status event
    progress_update = pyqtSignal(str)              # human-readable message
    manual_action_required = pyqtSignal(str)       # what the user must do
    job_finished = pyqtSignal(int, bool, str)      # index, success, error
    batch_finished = pyqtSignal(int, int)          # success_count, failure_count
    error_occurred = pyqtSignal(str, str)          # (category, error_message)

    def __init__(self, bot_factory, config, requests, shared_session: bool = True, parent=None):
        super().__init__(parent)
        self._bot_factory = bot_factory
        self._config = config
        self._requests = list(requests)
        self._shared_session = shared_session
        self._stop_flag = False
        self.bot = None

    def request_stop(self):
        """Ask the running batch to stop at the next wait slice."""
        self._stop_flag = True
        if self.bot is not None:
            self.bot.token.cancel()
        logger.info("Stop requested")

    def stop(self):
        """Alias for request_stop()."""
        self.request_stop()

    def _should_stop(self) -> bool:
        return self._stop_flag

    def _on_status(self, event: dict):
        self.status_event.emit(event)
        status = event.get("status")
        message = event.get("message", "")
        if message:
            self.progress_update.emit(message)
        if status == Status.MANUAL_ACTION_REQUIRED.value:
            self.manual_action_required.emit(message)
        elif status in (Status.DOWNLOAD_COMPLETE.value, Status.JOB_FAILED.value,
                        Status.JOB_CANCELLED.value):
            data = event.get("data") or {}
            self.job_finished.emit(
                int(data.get("index", -1)),
                status == Status.DOWNLOAD_COMPLETE.value,
                "" if status == Status.DOWNLOAD_COMPLETE.value else message,
            )

    def run(self):
        """Main thread entry point. Builds the bot, runs the batch, reports."""
        try:
            self.bot = self._bot_factory(self._config, self._on_status)
            if self._should_stop():
                self.bot.token.cancel()
            result = self.bot.run_batch(self._requests, shared_session=self._shared_session)
            self.batch_finished.emit(result.success_count, result.failure_count)
        except SunoBotError as e:
            logger.error("Batch aborted: %s", e)
            self.error_occurred.emit(e.category.value if e.category else "", e.user_message)
            self.batch_finished.emit(0, len(self._requests))
        except Exception as e:
            logger.error("Worker %s failed: %s", self.__class__.__name__, e)
            self.error_occurred.emit("", str(e))
            self.batch_finished.emit(0, len(self._requests))
