from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from dotenv import load_dotenv

from db import init_db
from eligibility.routes import router as eligibility_router, recompute_queue

load_dotenv()

logging.basicConfig(level=logging.INFO)
logging.info("App starting with DATABASE_URL")

app = FastAPI(title="Loan Eligibility Engine")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(eligibility_router)


@app.on_event("startup")
def on_startup():
    init_db()
    recompute_queue.start()


@app.on_event("shutdown")
def on_shutdown():
    recompute_queue.stop()


@app.get("/health", tags=["meta"], summary="Health check")
def health():
    return {"status": "ok"}
