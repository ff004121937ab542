"""Tests for the worker loop and its configuration."""

from unittest import TestCase
from unittest.mock import MagicMock, patch

from sqs_worker.envelope import Envelope
from sqs_worker.errors import ConfigurationError
from sqs_worker.handlers.base import HandlerDecorator
from sqs_worker.handlers.decode_json import DecodeJson
from sqs_worker.strategies import DeleteThenProcess, ProcessThenDelete
from sqs_worker.worker import Worker, WorkerConfig, create_logger, default_on_failure


class StopWorker(Exception):
    pass


def worker_kwargs(**overrides):
    kwargs = {
        "queue_url": "https://sqs.eu-west-1.amazonaws.com/123456789012/jobs",
        "region": "eu-west-1",
        "log": MagicMock(),
        "handler": MagicMock(),
    }
    kwargs.update(overrides)
    return kwargs


class TestWorkerConfiguration(TestCase):
    """Tests for Worker construction."""

    def test_defaults(self):
        worker = Worker(gateway=MagicMock(), **worker_kwargs())
        self.assertIsInstance(worker.strategy, ProcessThenDelete)
        self.assertIs(worker.on_failure, default_on_failure)
        self.assertEqual(worker.wait_time_seconds, 20)
        self.assertEqual(worker.region, "eu-west-1")

    def test_missing_required_fields_raise_configuration_error(self):
        for field in ("queue_url", "region", "log", "handler"):
            kwargs = worker_kwargs()
            del kwargs[field]
            with self.assertRaises(ConfigurationError) as ctx:
                Worker(**kwargs)
            self.assertIn(field, str(ctx.exception))

    def test_empty_queue_url_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            Worker(**worker_kwargs(queue_url=""))

    def test_logger_without_required_methods_is_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            Worker(**worker_kwargs(log=object()))
        self.assertIn("log", str(ctx.exception))

    def test_non_callable_handler_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            Worker(**worker_kwargs(handler=42))

    def test_non_callable_decorator_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            Worker(**worker_kwargs(decorators=("json",)))

    def test_decorator_instance_is_rejected_without_running_it(self):
        with self.assertRaises(ConfigurationError) as ctx:
            Worker(**worker_kwargs(decorators=[DecodeJson(None)]))
        self.assertIn("not a handler instance", str(ctx.exception))

        terminal = MagicMock()
        with self.assertRaises(ConfigurationError):
            Worker(**worker_kwargs(decorators=[HandlerDecorator(terminal)]))
        terminal.handle.assert_not_called()
        terminal.assert_not_called()

    def test_config_is_immutable(self):
        worker = Worker(**worker_kwargs())
        with self.assertRaises(Exception):
            worker.config.queue_url = "other"

    def test_chain_is_built_from_handler_and_decorators(self):
        worker = Worker(**worker_kwargs(decorators=[DecodeJson]))
        self.assertIsInstance(worker.chain.outermost, DecodeJson)

    def test_strategy_can_be_chosen(self):
        worker = Worker(**worker_kwargs(strategy=DeleteThenProcess()))
        self.assertIsInstance(worker.strategy, DeleteThenProcess)

    @patch("sqs_worker.worker.SqsGateway")
    def test_default_gateway_is_sqs_created_lazily(self, mock_gateway_class):
        worker = Worker(**worker_kwargs())
        mock_gateway_class.assert_not_called()
        gateway = worker.gateway
        mock_gateway_class.assert_called_once_with(
            "https://sqs.eu-west-1.amazonaws.com/123456789012/jobs", "eu-west-1"
        )
        self.assertIs(worker.gateway, gateway)

    def test_worker_config_can_be_built_directly(self):
        config = WorkerConfig(**worker_kwargs())
        self.assertEqual(config.decorators, ())


class TestWorkerRun(TestCase):
    """Tests for the run loop."""

    def test_loop_survives_failures_and_stops_when_callback_raises(self):
        first = Envelope(body="1", receipt_handle="rh-1")
        second = Envelope(body="2", receipt_handle="rh-2")
        gateway = MagicMock()
        gateway.receive.side_effect = [first, None, second]
        on_failure = MagicMock(side_effect=[None, StopWorker()])

        def handler(envelope):
            raise RuntimeError("bad message")

        worker = Worker(gateway=gateway, **worker_kwargs(handler=handler, on_failure=on_failure))

        with self.assertRaises(StopWorker):
            worker.run()

        self.assertEqual(gateway.receive.call_count, 3)
        self.assertEqual(
            [c.args for c in on_failure.call_args_list],
            [(worker, first), (worker, second)],
        )
        gateway.delete.assert_not_called()

    def test_loop_keeps_polling_after_empty_receives(self):
        envelope = Envelope(body="x", receipt_handle="rh-1")
        gateway = MagicMock()
        gateway.receive.side_effect = [None, None, envelope]
        gateway.delete.side_effect = StopWorker()
        handler = MagicMock()

        worker = Worker(gateway=gateway, **worker_kwargs(handler=handler))

        with self.assertRaises(StopWorker):
            worker.run()

        self.assertEqual(gateway.receive.call_count, 3)
        handler.assert_called_once_with(envelope)


class TestDefaultOnFailure(TestCase):
    """Tests for the default failure callback."""

    def test_logs_receipt_handle_and_dump(self):
        worker = MagicMock()
        envelope = Envelope(body='{"name": "x"}', receipt_handle="rh-9", message_id="m-1")

        default_on_failure(worker, envelope)

        worker.log.error.assert_called_once_with("Error processing message rh-9")
        dump = worker.log.debug.call_args[0][0]
        self.assertTrue(dump.startswith("Message Dump"))
        self.assertIn("m-1", dump)


class TestCreateLogger(TestCase):
    """Tests for create_logger."""

    def test_returns_named_logger_with_level(self):
        logger = create_logger("sqs_worker.tests", "DEBUG")
        self.assertEqual(logger.name, "sqs_worker.tests")
        self.assertEqual(logger.level, 10)
