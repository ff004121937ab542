"""Tests for handler chain composition."""

from functools import partial
from unittest import TestCase
from unittest.mock import MagicMock

from sqs_worker.chain import HandlerChain, build_chain
from sqs_worker.envelope import Envelope
from sqs_worker.errors import ConfigurationError, ProcessingError
from sqs_worker.handlers.base import BaseHandler, FunctionHandler, HandlerDecorator


class Tagging(HandlerDecorator):
    """Records a tag before and after delegating."""

    def __init__(self, inner, tag, trace):
        super().__init__(inner)
        self.tag = tag
        self.trace = trace

    def handle(self, envelope):
        self.trace.append(f"{self.tag}:in")
        self.inner.handle(envelope)
        self.trace.append(f"{self.tag}:out")


class Prefixing(HandlerDecorator):
    def handle(self, envelope):
        self.inner.handle(envelope.with_payload("prefixed " + envelope.payload))


class Aborting(HandlerDecorator):
    def handle(self, envelope):
        raise ValueError("rejected")


class Twice(HandlerDecorator):
    def handle(self, envelope):
        self.inner.handle(envelope)
        self.inner.handle(envelope)


def make_envelope(body="hello"):
    return Envelope(body=body, receipt_handle="rh-1")


class TestBuildChain(TestCase):
    """Tests for build_chain ordering and validation."""

    def test_decorators_run_outer_first_in_and_outer_last_out(self):
        trace = []
        terminal = FunctionHandler(lambda envelope: trace.append("terminal"))
        chain = build_chain(
            terminal,
            [partial(Tagging, tag=tag, trace=trace) for tag in ("a", "b", "c")],
        )
        chain.invoke(make_envelope())
        self.assertEqual(
            trace,
            ["a:in", "b:in", "c:in", "terminal", "c:out", "b:out", "a:out"],
        )

    def test_handlers_lists_outermost_first(self):
        terminal = FunctionHandler(lambda envelope: None)
        chain = build_chain(terminal, [Prefixing, Twice])
        handlers = chain.handlers
        self.assertEqual([type(h) for h in handlers], [Prefixing, Twice, FunctionHandler])
        self.assertIs(handlers[-1], terminal)

    def test_no_decorators_invokes_terminal_directly(self):
        handler = MagicMock()
        chain = build_chain(handler)
        envelope = make_envelope()
        chain.invoke(envelope)
        handler.assert_called_once_with(envelope)

    def test_plain_callable_is_wrapped(self):
        chain = build_chain(lambda envelope: None)
        self.assertIsInstance(chain.outermost, FunctionHandler)

    def test_non_callable_terminal_raises(self):
        with self.assertRaises(ConfigurationError):
            build_chain("not a handler")

    def test_handler_class_must_be_instantiated(self):
        class Handler(BaseHandler):
            def handle(self, envelope):
                pass

        with self.assertRaises(ConfigurationError):
            build_chain(Handler)

    def test_decorator_factory_must_return_handler(self):
        with self.assertRaises(ConfigurationError):
            build_chain(lambda envelope: None, [lambda inner: "nope"])

    def test_decorator_instance_is_rejected_before_it_runs(self):
        terminal = MagicMock()
        with self.assertRaises(ConfigurationError) as ctx:
            build_chain(lambda envelope: None, [HandlerDecorator(terminal)])
        self.assertIn("not a handler instance", str(ctx.exception))
        terminal.handle.assert_not_called()


class TestHandlerChainInvoke(TestCase):
    """Tests for what decorators may do and the chain's fault boundary."""

    def test_decorator_can_replace_payload(self):
        seen = []
        chain = build_chain(lambda envelope: seen.append(envelope.payload), [Prefixing])
        original = make_envelope("body")
        chain.invoke(original)
        self.assertEqual(seen, ["prefixed body"])
        self.assertEqual(original.payload, "body")

    def test_decorator_can_abort_without_delegating(self):
        terminal = MagicMock()
        chain = build_chain(terminal, [Aborting])
        with self.assertRaises(ProcessingError):
            chain.invoke(make_envelope())
        terminal.assert_not_called()

    def test_decorator_can_delegate_several_times(self):
        terminal = MagicMock()
        chain = build_chain(terminal, [Twice])
        chain.invoke(make_envelope())
        self.assertEqual(terminal.call_count, 2)

    def test_exception_is_converted_to_processing_error(self):
        def failing(envelope):
            raise KeyError("name")

        envelope = make_envelope()
        chain = build_chain(failing)
        with self.assertRaises(ProcessingError) as ctx:
            chain.invoke(envelope)
        self.assertIsInstance(ctx.exception.cause, KeyError)
        self.assertIs(ctx.exception.__cause__, ctx.exception.cause)
        self.assertIs(ctx.exception.envelope, envelope)

    def test_processing_error_from_below_is_not_rewrapped(self):
        envelope = make_envelope()
        error = ProcessingError(envelope, RuntimeError("inner"))

        def failing(envelope):
            raise error

        with self.assertRaises(ProcessingError) as ctx:
            HandlerChain(FunctionHandler(failing)).invoke(envelope)
        self.assertIs(ctx.exception, error)
