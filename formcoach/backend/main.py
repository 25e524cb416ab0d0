# backend/main.py
import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .llm_agent import LLM_PROVIDER, evaluate_session_with_llm
from .models import EvaluationResponse, SessionPayload

logger = logging.getLogger(__name__)

app = FastAPI(title="FormCoach Evaluation Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # browser and local clients post straight to us
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def health_check():
    return {"status": "ok", "llm": LLM_PROVIDER}


@app.post("/evaluate", response_model=EvaluationResponse)
def evaluate(payload: SessionPayload):
    logger.info("Evaluating session %s (%s, %d reps)",
                payload.meta.session_id, payload.exercise, payload.reps)

    result = evaluate_session_with_llm(payload.model_dump())
    if result is None:
        raise HTTPException(status_code=502, detail="LLM evaluation failed")

    try:
        return EvaluationResponse(**result)
    except ValidationError as e:
        logger.error("LLM returned an unusable evaluation: %s", e)
        raise HTTPException(status_code=502, detail="LLM evaluation was malformed")
