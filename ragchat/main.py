# Run from project root: uvicorn ragchat.main:app --reload

import logging

from fastapi import FastAPI

from ragchat.api.routes import router

logging.basicConfig(level=logging.INFO)


app = FastAPI(title="RAG Chat Backend")
app.include_router(router)
