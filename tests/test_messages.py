from __future__ import annotations

import unittest
from json import JSONDecodeError, dumps

from watson_stt.errors import (
    InvalidJsonError,
    ProtocolError,
    RecognizeStreamError,
    ServiceError,
    UnexpectedBinaryError,
    UnrecognisedMessageError,
)
from watson_stt.messages import MessageKind, classify_frame


class TestClassifyFrame(unittest.TestCase):

    def test_binary(self) -> None:
        with self.assertRaises(UnexpectedBinaryError) as ctx:
            classify_frame(b"\x00\x01")
        self.assertEqual(str(ctx.exception), "Unexpected binary data received from server")
        self.assertEqual(ctx.exception.raw, b"\x00\x01")
        self.assertIsInstance(ctx.exception, ProtocolError)

    def test_invalid_json(self) -> None:
        with self.assertRaises(InvalidJsonError) as ctx:
            classify_frame("{not json")
        err = ctx.exception
        self.assertTrue(str(err).startswith("Invalid JSON received from service"))
        self.assertIsInstance(err.__cause__, JSONDecodeError)
        self.assertEqual(err.raw, "{not json")

    def test_service_error(self) -> None:
        with self.assertRaises(ServiceError) as ctx:
            classify_frame(dumps({"error": "No speech detected for 30s."}))
        self.assertEqual(str(ctx.exception), "No speech detected for 30s.")
        self.assertIsInstance(ctx.exception, RecognizeStreamError)

    def test_error_wins_over_state(self) -> None:
        with self.assertRaises(ServiceError):
            classify_frame(dumps({"error": "boom", "state": "listening"}))

    def test_listening(self) -> None:
        msg = classify_frame(dumps({"state": "listening"}))
        self.assertIs(msg.kind, MessageKind.LISTENING)
        self.assertIsNone(msg.final_transcript)

    def test_final_result(self) -> None:
        msg = classify_frame(dumps({"results": [{"final": True, "alternatives": [{"transcript": "hello"}]}]}))
        self.assertIs(msg.kind, MessageKind.RESULTS)
        self.assertEqual(msg.final_transcript, "hello")

    def test_interim_result(self) -> None:
        msg = classify_frame(dumps({"results": [{"final": False, "alternatives": [{"transcript": "hel"}]}]}))
        self.assertIs(msg.kind, MessageKind.RESULTS)
        self.assertIsNone(msg.final_transcript)

    def test_empty_results(self) -> None:
        msg = classify_frame(dumps({"results": [], "result_index": 0}))
        self.assertIs(msg.kind, MessageKind.RESULTS)
        self.assertIsNone(msg.final_transcript)

    def test_final_without_alternatives(self) -> None:
        msg = classify_frame(dumps({"results": [{"final": True, "alternatives": []}]}))
        self.assertIsNone(msg.final_transcript)

    def test_malformed_result_entries(self) -> None:
        for payload in ({"results": [None]}, {"results": [{"final": True, "alternatives": [None]}]},
                        {"results": [{"final": True, "alternatives": "hello"}]},
                        {"results": [{"final": True, "alternatives": [{"transcript": 5}]}]},
                        {"results": {"final": True}}):
            with self.subTest(payload=payload):
                msg = classify_frame(dumps(payload))
                self.assertIs(msg.kind, MessageKind.RESULTS)
                self.assertIsNone(msg.final_transcript)

    def test_unrecognised(self) -> None:
        for frame in (dumps({"foo": "bar"}), dumps({"state": "idle"}), dumps([1, 2])):
            with self.subTest(frame=frame):
                with self.assertRaises(UnrecognisedMessageError) as ctx:
                    classify_frame(frame)
                self.assertEqual(str(ctx.exception), "Unrecognised message from server")
