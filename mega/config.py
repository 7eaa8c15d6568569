import os

# ─── STT Service ──────────────────────────────────────────────────────────────
STT_BASE_URL    = os.getenv("STT_BASE_URL", "http://localhost:8005")
STT_ENDPOINT    = f"{STT_BASE_URL}/asr"
STT_N_BEST      = int(os.getenv("STT_N_BEST", "300"))
STT_SAMPLE_RATE = 16000   # Hz — what the STT engine is trained on

# ─── TTS Service ──────────────────────────────────────────────────────────────
TTS_BASE_URL = os.getenv("TTS_BASE_URL", "http://localhost:8006")
TTS_ENDPOINT = f"{TTS_BASE_URL}/generate"
TTS_VOICE    = os.getenv("TTS_VOICE", "default")

# ─── HTTP timeouts (seconds) ──────────────────────────────────────────────────
STT_TIMEOUT = int(os.getenv("STT_TIMEOUT", "30"))
TTS_TIMEOUT = int(os.getenv("TTS_TIMEOUT", "60"))

# ─── Audio Devices ────────────────────────────────────────────────────────────
# PyAudio device indices — run the following to list available devices:
#   python -c "import pyaudio; pa=pyaudio.PyAudio(); [print(i, pa.get_device_info_by_index(i)['name']) for i in range(pa.get_device_count())]"
# Set to -1 to use system default.
MIC_DEVICE_INDEX = int(os.getenv("MIC_DEVICE_INDEX", "-1"))
SPK_DEVICE_INDEX = int(os.getenv("SPK_DEVICE_INDEX", "-1"))

# 0 → use the device's default sample rate.
MIC_SAMPLE_RATE = int(os.getenv("MIC_SAMPLE_RATE", "0"))
MIC_CHUNK_MS    = 10      # ms of audio per capture callback

# ─── Voice Activity ───────────────────────────────────────────────────────────
IDLE_BUFFER_SECONDS     = float(os.getenv("IDLE_BUFFER_SECONDS",     "2"))
COMMAND_BUFFER_SECONDS  = float(os.getenv("COMMAND_BUFFER_SECONDS",  "15"))
LOUDNESS_WINDOW_SECONDS = float(os.getenv("LOUDNESS_WINDOW_SECONDS", "1"))
# Mean absolute amplitude (float samples in [-1, 1]) that counts as speech.
ACTIVATION_THRESHOLD    = 0.01

# ─── Preprocessing ────────────────────────────────────────────────────────────
# Total-variation denoising strength. Changing it changes recognition quality.
DENOISE_LAMBDA = 0.05

# ─── Wake Word ────────────────────────────────────────────────────────────────
WAKE_WORD            = os.getenv("WAKE_WORD", "mega")
WAKE_WORD_ACK_PHRASE = os.getenv("WAKE_WORD_ACK_PHRASE", "ready")

# ─── Commands ─────────────────────────────────────────────────────────────────
COMMANDS_DIR       = os.getenv("COMMANDS_DIR", "commands")
COMMAND_SCRIPT_EXT = os.getenv("COMMAND_SCRIPT_EXT", ".py")

# ─── Controller loop ──────────────────────────────────────────────────────────
# Sleep between iterations when the microphone had nothing new.
LOOP_SLEEP_MS = int(os.getenv("LOOP_SLEEP_MS", "10"))

# ─── Debugging ────────────────────────────────────────────────────────────────
# Directory to dump every preprocessed utterance into as <n>.wav; empty → off.
SAVE_UTTERANCES_DIR = os.getenv("SAVE_UTTERANCES_DIR", "")
# WAV file transcribed once at startup to check the STT service; empty → off.
STT_SELFTEST_WAV    = os.getenv("STT_SELFTEST_WAV", "")
# Play every utterance sent to STT back through the speaker.
ECHO_UTTERANCES     = os.getenv("ECHO_UTTERANCES", "false").lower() == "true"

# ─── Logging ──────────────────────────────────────────────────────────────────
LOG_FILE  = os.getenv("LOG_FILE",  "mega.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
