from langchain_core.messages import AIMessage, HumanMessage, ToolMessage

from calbot.errors import LoopNonTerminationError
from calbot.supervisor.prompts import APOLOGY_MESSAGE, ROUND_TRIP_LIMIT_MESSAGE
from calbot.supervisor.response import MAX_ROUND_TRIPS_REASON, assemble_response, failure_response


def test_final_answer():
    state = {"messages": [HumanMessage(content="hola"), AIMessage(content="  Hola!  ")], "round_trips": 0}

    response = assemble_response(state, {"request_id": "r1"})

    assert response.success
    assert response.response_text == "Hola!"
    assert response.metadata == {"request_id": "r1", "round_trips": 0}


def test_content_blocks_are_joined():
    message = AIMessage(content=[{"type": "text", "text": "Ana is away "}, {"type": "text", "text": "until Sunday."}])

    response = assemble_response({"messages": [message], "round_trips": 1})

    assert response.response_text == "Ana is away until Sunday."


def test_round_trip_cap():
    state = {
        "messages": [AIMessage(content="", tool_calls=[{"name": "x", "args": {}, "id": "1"}])],
        "round_trips": 6,
        "terminated_reason": MAX_ROUND_TRIPS_REASON,
    }

    response = assemble_response(state)

    assert response.response_text == ROUND_TRIP_LIMIT_MESSAGE
    assert response.error == str(LoopNonTerminationError(6))


def test_last_message_not_from_the_model():
    state = {"messages": [ToolMessage(content="SUCCESS: []", tool_call_id="1")], "round_trips": 1}

    response = assemble_response(state)

    assert response.response_text == APOLOGY_MESSAGE
    assert not response.success


def test_pending_tool_calls():
    state = {"messages": [AIMessage(content="", tool_calls=[{"name": "x", "args": {}, "id": "1"}])]}

    assert assemble_response(state).response_text == APOLOGY_MESSAGE


def test_empty_answer():
    assert assemble_response({"messages": [AIMessage(content="   ")]}).error == "Agent produced an empty answer"


def test_failure_response_keeps_the_cause_for_logs():
    try:
        try:
            raise KeyError("calendar_identity")
        except KeyError as e:
            raise RuntimeError("tool crashed") from e
    except RuntimeError as exc:
        response = failure_response(exc, {"request_id": "r2"})

    assert response.response_text == APOLOGY_MESSAGE
    assert response.error == "RuntimeError: tool crashed"
    assert response.metadata["error_details"] == "KeyError: 'calendar_identity'"
    assert response.metadata["request_id"] == "r2"
