from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from workshop_booking.api.v1.schemas import (
    BookingListSchema,
    BookingSchema,
    ConfirmArrivalRequestSchema,
    EventSchema,
    MutationResultSchema,
    ResponseChangeRequestSchema,
    TrackRequestSchema,
)
from workshop_booking.application.dto.booking_payload import parse_response_status
from workshop_booking.application.engine import BookingEngine
from workshop_booking.application.exceptions import (
    BackendContractError,
    BackendTransportError,
    BookingNotTracked,
    RejectionKind,
    TransitionRejected,
)
from workshop_booking.application.policies.lifecycle import LifecycleAction
from workshop_booking.application.use_cases.mutation_gateway import MutationResult
from workshop_booking.infrastructure.notifications.event_bus import InProcessEventBus

router = APIRouter()
logger = logging.getLogger(__name__)

_STATUS_FOR_KIND = {
    RejectionKind.SERVER_REJECTED: 502,
    RejectionKind.ALREADY_HANDLED: 409,
    RejectionKind.NOT_ALLOWED: 409,
}


def get_engine(request: Request) -> BookingEngine:
    return request.app.state.engine


def _rejection(e: TransitionRejected) -> HTTPException:
    logger.info("Booking action rejected", extra={"reason": e.reason, "kind": e.kind.value})
    return HTTPException(
        status_code=409,
        detail={"reason": e.reason, "kind": e.kind.value, "message": e.describe()},
    )


def _not_tracked(e: BookingNotTracked) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


def _result(result: MutationResult, engine: BookingEngine, response: Response) -> MutationResultSchema:
    if not result.ok and result.kind is not None:
        response.status_code = _STATUS_FOR_KIND[result.kind]
    return MutationResultSchema.from_result(result, engine.clock.now(), engine.policy)


@router.get("", response_model=BookingListSchema)
async def list_bookings(engine: BookingEngine = Depends(get_engine)):
    now = engine.clock.now()
    return BookingListSchema(
        version=engine.tracker.version,
        bookings=[BookingSchema.from_booking(b, now, engine.policy) for b in engine.tracker.all()],
    )


@router.get("/awaiting-response", response_model=list[BookingSchema])
async def awaiting_response(engine: BookingEngine = Depends(get_engine)):
    now = engine.clock.now()
    return [BookingSchema.from_booking(b, now, engine.policy) for b in engine.tracker.awaiting_response()]


@router.get("/events", response_model=list[EventSchema])
async def recent_events(limit: int = Query(20, ge=1, le=100), engine: BookingEngine = Depends(get_engine)):
    if not isinstance(engine.sink, InProcessEventBus):
        return []
    return [EventSchema.from_event(e) for e in engine.sink.recent(limit)]


@router.post("", response_model=BookingSchema | None)
async def track_booking(req: TrackRequestSchema, engine: BookingEngine = Depends(get_engine)):
    try:
        booking = engine.tracker.track_payload(req.payload, local_created_at=req.local_created_at)
    except BackendContractError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if booking is None:
        return Response(status_code=204)
    return BookingSchema.from_booking(booking, engine.clock.now(), engine.policy)


@router.post("/{booking_id}/refresh", response_model=BookingSchema | None)
async def refresh_booking(booking_id: int, engine: BookingEngine = Depends(get_engine)):
    try:
        booking = await engine.gateway.refresh(booking_id)
    except BackendContractError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BackendTransportError as e:
        raise HTTPException(status_code=502, detail=str(e))
    if booking is None:
        return Response(status_code=204)
    return BookingSchema.from_booking(booking, engine.clock.now(), engine.policy)


@router.delete("/{booking_id}", status_code=204)
async def untrack_booking(booking_id: int, engine: BookingEngine = Depends(get_engine)):
    if not engine.tracker.untrack(booking_id):
        raise HTTPException(status_code=404, detail=f"Booking {booking_id} is not tracked")
    return Response(status_code=204)


@router.post("/{booking_id}/transitions/{action}", response_model=MutationResultSchema)
async def transition_booking(
    booking_id: int,
    action: LifecycleAction,
    response: Response,
    resync: bool = False,
    engine: BookingEngine = Depends(get_engine),
):
    try:
        result = await engine.gateway.transition(booking_id, action, resync=resync)
    except TransitionRejected as e:
        raise _rejection(e)
    except BookingNotTracked as e:
        raise _not_tracked(e)
    return _result(result, engine, response)


@router.put("/{booking_id}/response", response_model=MutationResultSchema)
async def change_response(
    booking_id: int,
    req: ResponseChangeRequestSchema,
    response: Response,
    engine: BookingEngine = Depends(get_engine),
):
    try:
        requested = parse_response_status(req.response_status)
    except BackendContractError as e:
        raise HTTPException(status_code=400, detail=str(e))
    try:
        result = await engine.gateway.change_response(booking_id, requested, req.actor)
    except TransitionRejected as e:
        raise _rejection(e)
    except BookingNotTracked as e:
        raise _not_tracked(e)
    return _result(result, engine, response)


@router.post("/{booking_id}/confirm-arrival", response_model=MutationResultSchema)
async def confirm_arrival(
    booking_id: int,
    req: ConfirmArrivalRequestSchema,
    response: Response,
    engine: BookingEngine = Depends(get_engine),
):
    try:
        result = await engine.gateway.confirm_arrival(booking_id, req.actor)
    except TransitionRejected as e:
        raise _rejection(e)
    except BookingNotTracked as e:
        raise _not_tracked(e)
    return _result(result, engine, response)
