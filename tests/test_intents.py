"""Tests for intent models and parsing."""

import pytest
from pydantic import ValidationError

from blockstage.intents import (
    INTENT_TYPES,
    ActorPatch,
    AddBlockToContainer,
    BlockPayload,
    RemoveBlock,
    StartRun,
    UnknownIntentError,
    parse_intent,
)
from blockstage.program.blocks import Block


class TestBlockPayload:
    """Tests for the block wire shape."""

    def test_nested_payload_to_block(self):
        payload = BlockPayload.model_validate({
            "id": "r1",
            "type": "CONTROL_REPEAT",
            "values": [3],
            "children": [{"id": "m1", "type": "MOTION_MOVE_STEPS", "values": [10]}],
        })
        block = payload.to_block()

        assert block == Block("r1", "CONTROL_REPEAT", (3,), (Block("m1", "MOTION_MOVE_STEPS", (10,)),))

    def test_from_block(self):
        block = Block("s1", "LOOKS_SAY", ("hi",))
        payload = BlockPayload.from_block(block)

        assert payload.id == "s1"
        assert payload.values == ["hi"]
        assert payload.children is None

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            BlockPayload(id="", type="MOTION_MOVE_STEPS")

    def test_values_keep_literal_types(self):
        payload = BlockPayload(id="g1", type="MOTION_GOTO_XY", values=[1, 2.5, "x"])
        assert payload.values == [1, 2.5, "x"]
        assert isinstance(payload.values[0], int)


class TestActorPatch:
    """Tests for partial actor updates."""

    def test_only_set_fields(self):
        assert ActorPatch(x=1.0).as_updates() == {"x": 1.0}

    def test_explicit_none_kept(self):
        assert ActorPatch(displayed_message=None).as_updates() == {"displayed_message": None}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            ActorPatch(kind="dog")


class TestParseIntent:
    """Tests for parse_intent."""

    def test_every_action_registered(self):
        assert set(INTENT_TYPES) == {
            "ADD_ACTOR", "REMOVE_ACTOR", "SELECT_ACTOR",
            "ADD_BLOCK_TO_ROOT", "ADD_BLOCK_TO_CONTAINER", "REMOVE_BLOCK",
            "START_RUN", "STOP_RUN", "UPDATE_ACTOR_STATE", "HANDLE_COLLISION",
        }

    def test_parse_container_add(self):
        intent = parse_intent("ADD_BLOCK_TO_CONTAINER", {
            "actor_id": "cat-1",
            "container_id": "r1",
            "block": {"id": "m1", "type": "MOTION_MOVE_STEPS", "values": [5]},
        })

        assert isinstance(intent, AddBlockToContainer)
        assert intent.block.values == [5]

    def test_parse_without_payload(self):
        assert isinstance(parse_intent("START_RUN"), StartRun)

    @pytest.mark.parametrize("payload", [
        {"block_id": "m1"},
        {"actor_id": "cat-1"},
        {"actor_id": "", "block_id": "m1"},
    ])
    def test_missing_ids(self, payload):
        with pytest.raises(ValidationError):
            parse_intent("REMOVE_BLOCK", payload)

    def test_unknown_action(self):
        with pytest.raises(UnknownIntentError):
            parse_intent("TELEPORT", {})

    def test_intents_are_frozen(self):
        intent = RemoveBlock(actor_id="cat-1", block_id="m1")
        with pytest.raises(ValidationError):
            intent.block_id = "m2"
