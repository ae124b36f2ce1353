# workflow.py

import logging
from typing import Optional

from langgraph.graph import StateGraph, END

from clinicbot.graph import (
    CANCEL_WORDS,
    CONFIRM_WORDS,
    SCHEDULE_WORDS,
    cancel_node,
    confirm_node,
    connect_calendar_node,
    fallback_node,
    get_name_node,
    get_phone_node,
    is_command,
    is_connect_request,
    offer_slots_node,
    start_node,
)
from clinicbot.slots import SlotCatalog, default_catalog
from clinicbot.state import Notification, Session, TurnResult, TurnState

logger = logging.getLogger(__name__)

NODES = {
    "CANCEL": cancel_node,
    "CONNECT_CALENDAR": connect_calendar_node,
    "START": start_node,
    "GET_NAME": get_name_node,
    "GET_PHONE": get_phone_node,
    "OFFER_SLOTS": offer_slots_node,
    "CONFIRM": confirm_node,
    "FALLBACK": fallback_node,
}

# Step-specific nodes. They consume any text except a cancel word.
STEP_NODES = {
    "get_name": "GET_NAME",
    "get_phone": "GET_PHONE",
    "offer_slots": "OFFER_SLOTS",
}


# Router ---------------------------------------------------------------------------


def route_turn(state: TurnState) -> str:
    """
    Picks the single node to run for this message.
    Checks are ordered by priority; the first match wins.
    """
    step = state.session.step
    text = state.text

    if is_command(text, CANCEL_WORDS):
        route = "CANCEL"
    elif step in STEP_NODES:
        route = STEP_NODES[step]
    elif state.connect_url and is_connect_request(text):
        route = "CONNECT_CALENDAR"
    elif is_command(text, SCHEDULE_WORDS) or step == "idle":
        route = "START"
    elif step == "confirm" and is_command(text, CONFIRM_WORDS):
        route = "CONFIRM"
    else:
        route = "FALLBACK"

    logger.info("[ROUTE_TURN] step=%s -> %s", step, route)
    return route


# Graph Builder ---------------------------------------------------------------------------


def build_graph():
    graph = StateGraph(TurnState)

    for name, node in NODES.items():
        graph.add_node(name, node)
        graph.add_edge(name, END)

    graph.set_conditional_entry_point(route_turn, {name: name for name in NODES})

    return graph.compile()


# Compiled Graph ---------------------------------------------------------------------------

booking_graph = build_graph()


# Public Runner ---------------------------------------------------------------------------


def advance(
    session: Session,
    text: Optional[str],
    *,
    sender_id: str,
    notify_to: Optional[str] = None,
    connect_url: Optional[str] = None,
    catalog: SlotCatalog = default_catalog,
) -> TurnResult:
    """
    Executes exactly ONE node for an inbound message.

    Pure with respect to its inputs: the caller persists `result.session`
    and delivers `result.notifications`.
    """
    result = booking_graph.invoke(
        {
            "sender_id": sender_id,
            "text": text or "",
            "session": session,
            "catalog": catalog,
            "notify_to": notify_to,
            "connect_url": connect_url,
            "outbox": [],
        },
        config={"recursion_limit": 3},
    )

    next_session = Session.model_validate(result["session"])
    notifications = [Notification.model_validate(n) for n in result.get("outbox", [])]

    logger.info(
        "[ADVANCE] %s: %s -> %s (%d notifications)",
        sender_id,
        session.step,
        next_session.step,
        len(notifications),
    )
    return TurnResult(session=next_session, notifications=notifications)
