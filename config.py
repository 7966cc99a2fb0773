import os
from dotenv import load_dotenv
from pathlib import Path

load_dotenv()

# credentials
# Watson service URL as shown in the IBM Cloud console (http/https, converted to ws/wss on connect)
WATSON_STT_URL = os.getenv("WATSON_STT_URL", "https://stream.watsonplatform.net/speech-to-text/api")
# Optional token obtained from the authorization service, forwarded as `watson-token` query param.
WATSON_STT_TOKEN = os.getenv("WATSON_STT_TOKEN")

# logging config
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEV").upper()

# file config
BASE_PATH = Path(__file__).parent
TMP_PATH = BASE_PATH / "tmp"
TMP_PATH.mkdir(exist_ok=True)
LOG_PATH = BASE_PATH / "log"
LOG_PATH.mkdir(exist_ok=True)

# Speech to text parameters
# https://cloud.ibm.com/docs/speech-to-text?topic=speech-to-text-websockets
WATSON_STT_MODEL = os.getenv("WATSON_STT_MODEL", "en-US_BroadbandModel")
# Watson sniffs the sample rate from the WAV header, so whole files (header included) are streamed.
WATSON_STT_CONTENT_TYPE = os.getenv("WATSON_STT_CONTENT_TYPE", "audio/wav")

# WebSocket transport
WS_OPEN_TIMEOUT_S = 10
WS_CLOSE_TIMEOUT_S = 5
WS_PING_INTERVAL_S = 10

# audio
# Size of a single binary frame when streaming a file.
CHUNK_BYTES = 8192
