from __future__ import annotations

import threading
from typing import Optional

from dispenser.command import AckResult, Command, CommandError, CommandKind
from dispenser.device_client import DeviceApiClient, DeviceApiError
from system.actuator.actuator_control import ActuatorController
from system.clock import SYSTEM_CLOCK, Clock
from system.log_utils import debug, error, info, warn

DEFAULT_POLL_INTERVAL = 7.0   # seconds


class CommandPoller:
    """
    Remote command loop, one tick every poll_interval seconds:
      1. report tracked payment id      (failure: log, continue)
      2. fetch at most one command      (failure: log, end tick)
      3. lock actuator, dispatch, unlock
      4. acknowledge outcome            (failure: log only)
      5. clear executing marker

    Payment id and executing command sit behind their own locks so status
    reads never wait on a running movement.
    """

    def __init__(
        self,
        client: DeviceApiClient,
        actuator: ActuatorController,
        actuator_lock: threading.Lock,
        *,
        default_duration: float,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Clock = SYSTEM_CLOCK,
    ):
        self.client = client
        self.actuator = actuator
        self.actuator_lock = actuator_lock
        self.default_duration = default_duration
        self.poll_interval = poll_interval
        self.clock = clock

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lifecycle_lock = threading.Lock()

        self._payment_lock = threading.Lock()
        self._payment_id = ""

        self._status_lock = threading.Lock()
        self._executing: Optional[Command] = None

    # ------------------------------------------------------------------
    # Tracked state
    # ------------------------------------------------------------------
    def set_payment_id(self, payment_id: str) -> None:
        with self._payment_lock:
            self._payment_id = payment_id or ""

    def get_payment_id(self) -> str:
        with self._payment_lock:
            return self._payment_id

    def clear_payment_id(self) -> None:
        self.set_payment_id("")

    def get_executing_command(self) -> Optional[Command]:
        with self._status_lock:
            return self._executing

    def _set_executing_command(self, cmd: Optional[Command]) -> None:
        with self._status_lock:
            self._executing = cmd

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lifecycle_lock:
            if self.is_running():
                debug("[POLLER] already running")
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run_loop, daemon=True, name="command-poller")
            self._thread.start()
        info(f"[POLLER] started (interval={self.poll_interval}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        with self._lifecycle_lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()
            self._thread = None

        # a tick in progress finishes its movement before the thread exits
        if thread is not threading.current_thread():
            thread.join(timeout)
        info("[POLLER] stopped")

    def _run_loop(self) -> None:
        while not self._stop_event.wait(self.poll_interval):
            try:
                self.poll()
            except Exception as e:
                error(f"[POLLER] tick failed: {e}")

    # ------------------------------------------------------------------
    # One tick
    # ------------------------------------------------------------------
    def poll(self) -> None:
        payment_id = self.get_payment_id()
        try:
            self.client.report_status(payment_id)
        except DeviceApiError as e:
            warn(f"[POLLER] failed to report status: {e}")

        try:
            cmd = self.client.fetch_command()
        except DeviceApiError as e:
            warn(f"[POLLER] failed to get command: {e}")
            return

        if cmd is None:
            return

        try:
            result = self.execute(cmd)
            try:
                self.client.acknowledge(cmd.id, result)
            except DeviceApiError as e:
                warn(f"[POLLER] failed to acknowledge command {cmd.id}: {e}")
        finally:
            self._set_executing_command(None)

    def execute(self, cmd: Command) -> AckResult:
        """Runs one command under the actuator lock and returns its ack."""
        with self.actuator_lock:
            self._set_executing_command(cmd)
            try:
                self._dispatch(cmd)
            except Exception as e:
                error(f"[POLLER] failed to execute command {cmd.id} ({cmd.name}): {e}")
                return AckResult.failed(e)
        return AckResult.success()

    def _dispatch(self, cmd: Command) -> None:
        duration = cmd.resolve_duration(self.default_duration)
        source = "API-provided" if (cmd.duration_ms or 0) > 0 else "default"

        if cmd.kind == CommandKind.EXTEND:
            info(f"[POLLER] command {cmd.id}: extend with {source} duration {duration}s")
            self.actuator.extend(duration)
        elif cmd.kind == CommandKind.RETRACT:
            info(f"[POLLER] command {cmd.id}: retract with {source} duration {duration}s")
            self.actuator.retract(duration)
        elif cmd.kind == CommandKind.HOME:
            info(f"[POLLER] command {cmd.id}: home")
            self.actuator.home()
        elif cmd.kind == CommandKind.MESSAGE:
            info(f"[POLLER] command {cmd.id}: displaying message {cmd.message!r} for {duration}s")
            self.clock.sleep(duration)
        elif cmd.kind == CommandKind.CANCEL:
            info(f"[POLLER] command {cmd.id}: cancel, clearing payment id")
            self.clear_payment_id()
        else:
            raise CommandError(f"unknown command: {cmd.name}")
