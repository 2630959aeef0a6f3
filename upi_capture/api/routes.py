import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from loguru import logger

from upi_capture.api.listener import WebSocketListener
from upi_capture.deps import dispatcher, live, repo, watcher
from upi_capture.exceptions import RegistrationError
from upi_capture.models.schemas import (
    PaymentRecord,
    ResumePayload,
    ResumeResponse,
    SmsDeliveryRequest,
    SmsDeliveryResponse,
)

router = APIRouter()


@router.post("/sms", response_model=SmsDeliveryResponse)
def receive_sms(request: SmsDeliveryRequest):
    route = dispatcher.receive(request.fragments, address=request.address)
    logger.info("SMS from {} routed: {}", request.address or "unknown", route)
    return SmsDeliveryResponse(route=route)


@router.get("/pending", response_model=list[PaymentRecord])
def list_pending():
    return repo.list()


@router.delete("/pending")
def clear_pending():
    repo.clear()
    logger.info("Cleared pending payments")
    return {"cleared": True}


@router.get("/permissions")
def check_permissions():
    return watcher.check_permissions()


@router.post("/watch/stop")
def stop_watching():
    return watcher.stop_watching()


@router.post("/resume", response_model=ResumeResponse)
def resume_payment(payload: ResumePayload):
    return ResumeResponse(delivered=live.resume(payload))


@router.websocket("/ws/sms")
async def sms_events(websocket: WebSocket):
    await websocket.accept()
    listener = WebSocketListener(websocket, asyncio.get_running_loop())

    try:
        result = watcher.start_watching(listener)
    except RegistrationError as e:
        logger.error("Failed to register live listener: {}", e)
        await websocket.send_json({"started": False, "reason": str(e)})
        await websocket.close()
        return

    await websocket.send_json(result.model_dump(exclude_none=True))
    if not result.started or result.reason == "already_running":
        await websocket.close()
        return

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Live client disconnected")
    finally:
        watcher.stop_watching(listener)
