# gateway_mock/main.py
import uuid

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

app = FastAPI(title="Payment Gateway (dev mock)")


class IntentIn(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in minor units")
    currency: str
    metadata: dict = {}


INTENTS = {}


@app.post("/payment_intents")
def create_payment_intent(payload: IntentIn):
    intent_id = f"pi_{uuid.uuid4().hex[:24]}"
    intent = {
        "id": intent_id,
        "client_secret": f"{intent_id}_secret_{uuid.uuid4().hex[:16]}",
        "status": "requires_payment_method",
        "amount": payload.amount,
        "currency": payload.currency,
        "metadata": payload.metadata,
    }
    INTENTS[intent_id] = intent
    return intent


@app.get("/payment_intents/{intent_id}")
def get_payment_intent(intent_id: str):
    intent = INTENTS.get(intent_id)
    if not intent:
        raise HTTPException(status_code=404, detail="Payment intent not found")
    return intent
