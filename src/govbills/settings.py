import os

# Qdrant configuration
USE_CLOUD_QDRANT = os.environ.get("USE_CLOUD_QDRANT", "false").lower() == "true"

# Local Qdrant (default)
QDRANT_HOST = os.environ.get("QDRANT_HOST", "http://localhost:6333")
QDRANT_GRPC_PORT = int(os.environ.get("QDRANT_GRPC_PORT", "6334"))
QDRANT_API_KEY = os.environ.get("QDRANT_API_KEY", None)

# Cloud Qdrant (when USE_CLOUD_QDRANT=true)
QDRANT_CLOUD_URL = os.environ.get("QDRANT_CLOUD_URL")
QDRANT_CLOUD_API_KEY = os.environ.get("QDRANT_CLOUD_API_KEY")

# Embedded on-disk Qdrant (no server); takes precedence over the settings above
QDRANT_PATH = os.environ.get("QDRANT_PATH")
QDRANT_TIMEOUT_SECONDS = int(os.environ.get("QDRANT_TIMEOUT_SECONDS", "120"))

# Collection holding bill text chunks
BILL_CHUNK_COLLECTION = os.environ.get("BILL_CHUNK_COLLECTION", "bill_chunk")

# Namespace used for every bill entry in the semantic index
BILL_NAMESPACE = "bills"

# Azure OpenAI embedding configuration
EMBEDDING_DIMENSIONS = int(os.environ.get("EMBEDDING_DIMENSIONS", "1536"))
EMBEDDING_DEPLOYMENT = os.environ.get(
    "AZURE_OPENAI_EMBEDDING_DEPLOYMENT", "text-embedding-3-small"
)
EMBEDDING_BATCH_SIZE = int(os.environ.get("EMBEDDING_BATCH_SIZE", "64"))

# Azure OpenAI chat configuration (bill summaries)
CHAT_DEPLOYMENT = os.environ.get("AZURE_OPENAI_CHAT_DEPLOYMENT", "gpt-4o-mini")

# govinfo.gov bulk data
GOVINFO_BULKDATA_URL = os.environ.get(
    "GOVINFO_BULKDATA_URL", "https://www.govinfo.gov/bulkdata/json/BILLS"
)
CONGRESS = int(os.environ.get("CONGRESS", "119"))
SESSION = int(os.environ.get("CONGRESS_SESSION", "1"))

BILL_TYPES = ["hr", "s", "hjres", "sjres"]

BILL_TYPE_NAME_MAPPING = {
    "hr": "House Bill",
    "s": "Senate Bill",
    "hjres": "House Joint Resolution",
    "sjres": "Senate Joint Resolution",
    "hconres": "House Concurrent Resolution",
    "sconres": "Senate Concurrent Resolution",
    "hres": "House Simple Resolution",
    "sres": "Senate Simple Resolution",
}

# Version codes never dispatched from discovery (e.g. "ih,is" to skip introduced drafts)
EXCLUDED_VERSION_CODES = [
    code.strip()
    for code in os.environ.get("EXCLUDED_VERSION_CODES", "").split(",")
    if code.strip()
]

# Enrichment pass
INGEST_BATCH_SIZE = int(os.environ.get("INGEST_BATCH_SIZE", "5"))
INTER_BATCH_DELAY_SECONDS = float(os.environ.get("INTER_BATCH_DELAY_SECONDS", "0"))
STEP_MAX_ATTEMPTS = int(os.environ.get("STEP_MAX_ATTEMPTS", "3"))
STEP_INITIAL_BACKOFF_SECONDS = float(os.environ.get("STEP_INITIAL_BACKOFF_SECONDS", "1.0"))
STEP_MAX_BACKOFF_SECONDS = float(os.environ.get("STEP_MAX_BACKOFF_SECONDS", "30.0"))

# Chunking for the semantic index
CHUNK_SIZE = int(os.environ.get("CHUNK_SIZE", "2000"))
CHUNK_OVERLAP = int(os.environ.get("CHUNK_OVERLAP", "200"))

# Persistent store (bills, versions, politicians, audit trail, watermark)
STORE_DIR = os.environ.get(
    "GOVBILLS_STORE_DIR", os.path.join(os.getcwd(), "data", "store")
)

# HTTP client
HTTP_MAX_RETRIES = int(os.environ.get("HTTP_MAX_RETRIES", "3"))
HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "30"))
HTTP_CACHE_ENABLED = os.environ.get("HTTP_CACHE_ENABLED", "false").lower() == "true"
HTTP_CACHE_DIR = os.environ.get("HTTP_CACHE_DIR")
