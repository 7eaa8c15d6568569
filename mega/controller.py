import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

import numpy as np

from . import config
from .errors import ChannelClosedError, CommandNotFoundError, MalformedCommandTreeError
from .onset import locate_onset
from .preprocess import preprocess
from .resolver import ResolvedCommand, resolve_command
from .scripting import ScriptSession
from .transcript import TranscriptTree, build_transcript_tree
from .window import SampleWindow, SpeechEvent, VoiceActivityDetector

log = logging.getLogger(__name__)

NOT_FOUND_PHRASE  = "Could not find that command."
SEARCHING_PHRASE  = "searching for command"
EXECUTING_PHRASE  = "Executing command"


# ── states ───────────────────────────────────────────────────────────────────

@dataclass
class Idle:
    """Waiting for the wake word."""
    window: SampleWindow
    vad: VoiceActivityDetector


@dataclass
class HeardTrigger:
    """Heard the wake word; recording the command."""
    window: SampleWindow
    vad: VoiceActivityDetector


@dataclass
class SearchingForCommand:
    tree: TranscriptTree


@dataclass
class ExecingCommand:
    command: ResolvedCommand
    session: ScriptSession


State = Union[Idle, HeardTrigger, SearchingForCommand, ExecingCommand]


class VoiceSessionController:
    """
    Single-threaded state machine driving one voice interaction at a time:

      Idle → HeardTrigger → SearchingForCommand → ExecingCommand → Idle

    Each ``step()`` runs one iteration for the current state and replaces the
    state with whatever comes next. STT calls and command scripts block the
    loop; microphone audio piles up in ``mic_queue`` meanwhile.

    Only resolution failures are handled here (spoken, back to Idle). STT
    errors, onset-locator failures, script errors and dead workers propagate
    out of ``step()`` / ``run()``.
    """

    def __init__(
        self,
        mic_queue: queue.Queue,
        mic_sample_rate: int,
        stt,
        speak: Callable[[str], None],
        commands_dir=config.COMMANDS_DIR,
        mic_alive: Optional[Callable[[], bool]] = None,
        recorder: Optional[Callable[[np.ndarray], None]] = None,
        echo: Optional[Callable[[np.ndarray], None]] = None,
    ):
        self._mic_queue    = mic_queue
        self._mic_rate     = mic_sample_rate
        self._stt          = stt
        self._speak        = speak
        self._commands_dir = commands_dir
        self._mic_alive    = mic_alive
        self._recorder     = recorder
        self._echo         = echo

        self._loudness_window = max(1, int(mic_sample_rate * config.LOUDNESS_WINDOW_SECONDS))
        self._state: State = self._new_idle()

    @property
    def state(self) -> State:
        return self._state

    # ── state constructors ───────────────────────────────────────────────────

    def _silent_window(self, seconds: float) -> SampleWindow:
        # Start full of silence so loudness and onset search both average over
        # a whole loudness window from the very first chunk.
        capacity = max(1, int(self._mic_rate * seconds))
        window = SampleWindow(capacity)
        window.push(np.zeros(capacity, dtype=np.float32))
        return window

    def _new_idle(self) -> Idle:
        return Idle(window=self._silent_window(config.IDLE_BUFFER_SECONDS), vad=VoiceActivityDetector())

    def _new_heard_trigger(self) -> HeardTrigger:
        return HeardTrigger(
            window=self._silent_window(config.COMMAND_BUFFER_SECONDS), vad=VoiceActivityDetector()
        )

    # ── loop ─────────────────────────────────────────────────────────────────

    def run(self, stop: Optional[threading.Event] = None):
        log.info("Controller running (mic %d Hz).", self._mic_rate)
        idle_sleep = config.LOOP_SLEEP_MS / 1000
        while stop is None or not stop.is_set():
            if not self.step() and idle_sleep > 0:
                time.sleep(idle_sleep)

    def step(self) -> bool:
        """Run one iteration. Returns False when there was nothing to do."""
        state = self._state
        if isinstance(state, Idle):
            next_state, busy = self._step_idle(state)
        elif isinstance(state, HeardTrigger):
            next_state, busy = self._step_heard_trigger(state)
        elif isinstance(state, SearchingForCommand):
            next_state, busy = self._step_searching(state), True
        elif isinstance(state, ExecingCommand):
            next_state, busy = self._step_execing(state), True
        else:
            raise TypeError(f"unknown controller state: {state!r}")

        if next_state is not state:
            log.info("State: %s → %s", type(state).__name__, type(next_state).__name__)
        self._state = next_state
        return busy

    # ── helpers ──────────────────────────────────────────────────────────────

    def _drain_mic(self) -> List[np.ndarray]:
        chunks = []
        while True:
            try:
                chunks.append(self._mic_queue.get_nowait())
            except queue.Empty:
                break
        if not chunks and self._mic_alive is not None and not self._mic_alive():
            raise ChannelClosedError("microphone capture is no longer running")
        return chunks

    def _listen(self, state) -> tuple:
        """Feed new mic audio into ``state.window``; return (event, got_audio)."""
        chunks = self._drain_mic()
        for chunk in chunks:
            state.window.push(chunk)
        if not chunks:
            return SpeechEvent.NONE, False
        loudness = state.window.loudness(self._loudness_window)
        return state.vad.update(loudness), True

    def _transcribe(self, samples: np.ndarray) -> List[str]:
        if self._echo is not None:
            self._echo(samples)
        pcm = preprocess(samples, self._mic_rate)
        if self._recorder is not None:
            self._recorder(pcm)
        log.info("STT: transcribing %.2fs of audio …", pcm.size / config.STT_SAMPLE_RATE)
        t0 = time.time()
        hypotheses = self._stt.speech_to_text(pcm, config.STT_N_BEST)
        log.info("STT: %d hypotheses in %.0f ms", len(hypotheses), (time.time() - t0) * 1000)
        if hypotheses:
            log.info("Heard: %s", hypotheses[0])
        log.debug("Mic backlog after STT: %d chunks", self._mic_queue.qsize())
        return hypotheses

    # ── per-state iterations ─────────────────────────────────────────────────

    def _step_idle(self, state: Idle):
        event, busy = self._listen(state)
        if event is not SpeechEvent.END:
            return state, busy

        hypotheses = self._transcribe(state.window.snapshot())
        if any(h == config.WAKE_WORD for h in hypotheses):
            log.info("Wake word '%s' detected.", config.WAKE_WORD)
            self._speak(config.WAKE_WORD_ACK_PHRASE)
            return self._new_heard_trigger(), True
        return self._new_idle(), True

    def _step_heard_trigger(self, state: HeardTrigger):
        event, busy = self._listen(state)
        if event is not SpeechEvent.END:
            return state, busy

        utterance = state.window.snapshot()
        onset = locate_onset(utterance, self._loudness_window, config.ACTIVATION_THRESHOLD)
        log.debug("Speech onset at sample %d of %d", onset, utterance.size)
        tree = build_transcript_tree(self._transcribe(utterance[onset:]))
        self._speak(SEARCHING_PHRASE)
        return SearchingForCommand(tree=tree), True

    def _step_searching(self, state: SearchingForCommand) -> State:
        try:
            command = resolve_command(state.tree, self._commands_dir, config.COMMAND_SCRIPT_EXT)
        except CommandNotFoundError as exc:
            log.info("Command not found: %s", exc)
            self._speak(NOT_FOUND_PHRASE)
            return self._new_idle()
        except MalformedCommandTreeError as exc:
            log.warning("%s", exc)
            self._speak(str(exc.path))
            return self._new_idle()

        self._speak(EXECUTING_PHRASE)
        session = ScriptSession.load(command.path)
        session.bind(speak=self._speak)
        return ExecingCommand(command=command, session=session)

    def _step_execing(self, state: ExecingCommand) -> State:
        state.session.bind(
            arguments=state.command.arguments,
            raw_arguments=state.command.raw_arguments,
        )
        t0 = time.time()
        state.session.run()
        log.info("Command %s finished in %.0f ms", state.command.path, (time.time() - t0) * 1000)
        return self._new_idle()
