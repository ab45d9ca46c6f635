"""
Settings for the chat backend, read from the environment (.env supported).

Responsibility: Provider keys and models, web search and vector store endpoints,
retrieval limits, timeouts. Modules import the constants they need from here.
"""

import os

from dotenv import load_dotenv

load_dotenv()

# OpenAI (chat LLM). When set, strategies use OpenAI instead of Hugging Face.
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)

# Hugging Face (embeddings, fallback chat LLM)
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_CHAT_URL: str = "https://router.huggingface.co/v1/chat/completions"
HF_LLM_MODEL: str = (
    os.getenv("HF_LLM_MODEL", "meta-llama/Llama-3.2-3B-Instruct").strip()
    or "meta-llama/Llama-3.2-3B-Instruct"
)
HF_EMBED_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
EMBED_BATCH_SIZE: int = 32

# Tavily web search
TAVILY_API_KEY: str = os.getenv("TAVILY_API_KEY", "").strip()
TAVILY_SEARCH_URL: str = "https://api.tavily.com/search"
WEB_SEARCH_DEPTH: str = "advanced"
WEB_SEARCH_MAX_RESULTS: int = 5

# Milvus (from env). Empty URI keeps documents in process memory.
MILVUS_URI: str = os.getenv("MILVUS_URI", "").strip()
MILVUS_TOKEN: str = os.getenv("MILVUS_TOKEN", "").strip()
COLLECTION_NAME: str = os.getenv("COLLECTION_NAME", "coffees").strip() or "coffees"

# Vector collection: embedding dim (sentence-transformers/all-MiniLM-L6-v2 = 384)
VECTOR_DIM: int = 384

# Similarity retrieval (precision over recall)
SIMILARITY_THRESHOLD: float = 0.4
SIMILARITY_TOP_K: int = 3

# API timeouts (seconds)
EMBED_API_TIMEOUT: float = 30.0
LLM_API_TIMEOUT: float = 60.0
WEB_SEARCH_TIMEOUT: float = 15.0
REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "120") or 120)

# Tool-calling loop
MAX_AGENTIC_ROUNDS: int = 8
AGENT_MAX_TOKENS: int = 512

# Conversation memory. 0 = return the full history.
MEMORY_MAX_MESSAGES: int = int(os.getenv("MEMORY_MAX_MESSAGES", "0") or 0)

# Answer returned whenever the model produced no content
FALLBACK_ANSWER: str = "Sorry, I don't know that."
