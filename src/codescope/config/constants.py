"""Shared defaults referenced by config models and components."""

DATA_DIR_NAME = ".codescope"
DB_FILENAME = "index.db"
CONFIG_FILENAME = "config.yaml"

DEFAULT_MAX_FILE_SIZE_BYTES = 1024 * 1024
DEFAULT_CHUNK_MAX_CHARS = 500
PROGRESS_LOG_INTERVAL = 100

OPENAI_BASE_URL = "https://api.openai.com/v1"
OPENAI_API_KEY_ENV = "OPENAI_API_KEY"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_EMBEDDING_DIMENSIONS = 1536
DEFAULT_EMBEDDING_BATCH_SIZE = 100
DEFAULT_EMBEDDING_MAX_INPUT_CHARS = 8000

# Local embedding tokenizer caps
LOCAL_EMBED_MAX_TOKENS = 1000
LOCAL_EMBED_SCATTER = 3
LOCAL_EMBED_STRIDE = 17

DEFAULT_SEARCH_LIMIT = 10
DEFAULT_SEARCH_THRESHOLD = 0.7
DEFAULT_CONTEXT_SIZE = 5
SNIPPET_MAX_CHARS = 200
DEFINITION_CONTEXT_CHARS = 100
DEFINITION_MAX_LINES = 5
