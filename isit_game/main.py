import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from isit_game.core.config import LOG_LEVEL, CORS_ORIGINS
from isit_game.api.votes import router as votes_router
from isit_game.api.users import router as users_router
from isit_game.api.messages import router as messages_router

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = FastAPI(title="ISIT Game API", version="1.0.0")
app.add_middleware(CORSMiddleware, allow_origins=CORS_ORIGINS, allow_credentials=True, allow_methods=["*"], allow_headers=["*"])
app.include_router(votes_router, prefix="/v1/polls", tags=["votes"])
app.include_router(users_router, prefix="/v1/users", tags=["users"])
app.include_router(messages_router, prefix="/v1/messages", tags=["messages"])

@app.get("/health")
def health(): return {"status": "ok"}
