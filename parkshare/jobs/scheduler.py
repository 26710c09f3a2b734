import threading

from parkshare.services.sweeper_service import SweeperService


class LifecycleTicker:
    """Background thread that runs the lifecycle sweep every ``interval``."""

    def __init__(self, app, interval):
        self.app = app
        self.interval = interval
        self._stop = threading.Event()
        self._thread = None
        self._start_lock = threading.Lock()

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        with self._start_lock:
            if self.running:
                return
            self._stop.clear()
            self._thread = threading.Thread(target=self._run, name="lifecycle-sweeper", daemon=True)
            self._thread.start()
        self.app.logger.info("Lifecycle sweeper started (every %ss)", int(self.interval.total_seconds()))

    def start_on_first_request(self):
        """Defer the thread to the serving process.

        One-shot CLI commands and the reloader parent never handle a request,
        so they never start sweeping.
        """
        self.app.before_request(self._ensure_started)

    def _ensure_started(self):
        if not self.running and not self._stop.is_set():
            self.start()

    def stop(self, timeout=5):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None

    def tick(self):
        with self.app.app_context():
            return SweeperService.sweep()

    def _run(self):
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception:
                self.app.logger.exception("Lifecycle sweep tick failed")
            self._stop.wait(self.interval.total_seconds())
