# app/routers/passes.py
"""Visitor passes: issue, list, revoke, and render as QR / shareable card."""

from fastapi import APIRouter, Depends, HTTPException, Response
from app.schemas.visitor_pass import PassCreate, PassOut
from app.routers.deps import get_current_host, get_store
from app.services.pass_encoder import (
    ImageCompositionError, build_verification_url, compose_shareable_image,
    image_to_png, render_code, share_filename,
)
from app.services.pass_service import (
    PassCreationError, PassNotFound, create_pass, delete_pass, get_pass, list_passes,
)
from app.services.record_store import RecordStore, RecordStoreError
from app.services.session_provider import HostIdentity
from app.services.share_service import ShareUnavailableError, share_pass_image
from app.services.verification_presenter import to_pass_out
from app.services.verification_service import VerificationResolver
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _load(store: RecordStore, host: HostIdentity, pass_id: str):
    try:
        return get_pass(store, host, pass_id)
    except PassNotFound:
        raise HTTPException(status_code=404, detail="Invitation not found")
    except RecordStoreError:
        raise HTTPException(status_code=503, detail="Invitation store unavailable")


@router.post("/passes", response_model=PassOut, status_code=201, summary="Issue a visitor pass")
def issue_pass(body: PassCreate, host: HostIdentity = Depends(get_current_host),
               store: RecordStore = Depends(get_store)):
    today = VerificationResolver(store).today()
    try:
        record = create_pass(store, host, body, today=today)
    except PassCreationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RecordStoreError:
        raise HTTPException(status_code=500, detail="Failed to create invitation")
    return to_pass_out(record)


@router.get("/passes", response_model=list[PassOut], summary="List my visitor passes")
def get_my_passes(host: HostIdentity = Depends(get_current_host), store: RecordStore = Depends(get_store)):
    try:
        return [to_pass_out(r) for r in list_passes(store, host)]
    except RecordStoreError:
        raise HTTPException(status_code=503, detail="Invitation store unavailable")


@router.get("/passes/{pass_id}", response_model=PassOut)
def get_one_pass(pass_id: str, host: HostIdentity = Depends(get_current_host),
                 store: RecordStore = Depends(get_store)):
    return to_pass_out(_load(store, host, pass_id))


@router.delete("/passes/{pass_id}", summary="Revoke a visitor pass")
def revoke_pass(pass_id: str, host: HostIdentity = Depends(get_current_host),
                store: RecordStore = Depends(get_store)):
    try:
        delete_pass(store, host, pass_id)
    except PassNotFound:
        raise HTTPException(status_code=404, detail="Invitation not found")
    except RecordStoreError:
        raise HTTPException(status_code=500, detail="Failed to delete invitation")
    return {"status": "deleted", "id": pass_id}


@router.get("/passes/{pass_id}/qr", summary="QR code PNG for a pass",
            response_class=Response, responses={200: {"content": {"image/png": {}}}})
def get_pass_qr(pass_id: str, host: HostIdentity = Depends(get_current_host),
                store: RecordStore = Depends(get_store)):
    record = _load(store, host, pass_id)
    png = image_to_png(render_code(build_verification_url(record.pass_token)))
    return Response(content=png, media_type="image/png")


@router.post("/passes/{pass_id}/share", summary="Share the pass card, or download it",
             responses={200: {"content": {"image/png": {}}}})
async def share_pass(pass_id: str, host: HostIdentity = Depends(get_current_host),
                     store: RecordStore = Depends(get_store)):
    """
    Sends the pass card to the visitor through the share gateway.
    Without a working gateway the card is returned as a PNG download instead.
    """
    record = _load(store, host, pass_id)
    try:
        code = render_code(build_verification_url(record.pass_token))
        card = compose_shareable_image(record, host.address, code)
        png = image_to_png(card)
    except ImageCompositionError as e:
        raise HTTPException(status_code=500, detail=str(e))

    filename = share_filename(record.visitor_name)
    try:
        await share_pass_image(png, filename, record.visitor_name, record.visitor_phone)
        return {"status": "shared", "filename": filename}
    except ShareUnavailableError as e:
        logger.info(f"[SHARE] Falling back to download for {pass_id}: {e}")

    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
