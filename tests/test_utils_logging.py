"""
Tests for enhanced logging utilities

Tests contextual logging, operation tracing, and draft context management.
"""
import json
import logging
import pytest
import time
from unittest.mock import patch

from models.turn import Side
from utils.logging import (
    ROOT_LOGGER_NAME,
    ContextualLogger,
    JSONFormatter,
    clear_context,
    get_contextual_logger,
    log_context,
    set_draft_context,
    setup_logging,
)


def _record(msg: str = 'Test message', level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name='test_logger',
        level=level,
        pathname='test.py',
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None
    )


class TestContextualLogger:
    """Test contextual logger functionality."""

    @pytest.fixture
    def logger(self) -> ContextualLogger:
        """Create a test contextual logger."""
        clear_context()
        return get_contextual_logger('test_logger')

    def test_start_operation(self, logger):
        """Test operation start tracking."""
        trace_id = logger.start_operation('submit_pick')

        assert len(trace_id) == 8
        assert trace_id in logger._start_times

        context = log_context.get({})
        assert context['trace_id'] == trace_id
        assert context['operation'] == 'submit_pick'

    def test_start_operation_keeps_draft_context(self, logger):
        set_draft_context(session_key='abc123', side='B')
        logger.start_operation('undo_last')

        context = log_context.get({})
        assert context['session_key'] == 'abc123'
        assert context['side'] == 'B'

    def test_end_operation_success(self, logger):
        """Test successful operation end tracking."""
        trace_id = logger.start_operation('submit_pick')
        time.sleep(0.01)

        with patch.object(logger.logger, 'info') as mock_info:
            logger.end_operation(trace_id, 'completed')

            mock_info.assert_called_once()
            call_args = mock_info.call_args
            assert 'Operation completed' in call_args[0][0]

            extra = call_args[1]['extra']
            assert extra['trace_id'] == trace_id
            assert extra['final_duration_ms'] > 0
            assert extra['operation_result'] == 'completed'

        assert logger._start_times == {}
        context = log_context.get({})
        assert 'trace_id' not in context
        assert 'operation' not in context

    def test_end_operation_without_start(self, logger):
        """Test end_operation called without start_operation."""
        with patch.object(logger, 'warning') as mock_warning:
            logger.end_operation('fake_trace_id', 'completed')

            mock_warning.assert_called_once_with(
                "end_operation called without corresponding start_operation"
            )

    def test_overlapping_operations_time_independently(self, logger):
        """Ending one operation leaves another in-flight operation timed."""
        first = logger.start_operation('submit_pick')
        second = logger.start_operation('undo_last')

        with patch.object(logger, 'warning') as mock_warning, \
                patch.object(logger.logger, 'info') as mock_info:
            logger.end_operation(first, 'completed')
            logger.end_operation(second, 'completed')

        mock_warning.assert_not_called()
        traces = [c[1]['extra']['trace_id'] for c in mock_info.call_args_list]
        assert traces == [first, second]
        assert logger._start_times == {}

    def test_logging_methods_with_duration(self, logger):
        """Test that logging methods include duration when operation is active."""
        logger.start_operation('submit_pick')
        time.sleep(0.01)

        with patch.object(logger.logger, 'info') as mock_info:
            logger.info('pick applied', slot=3)

            call_args = mock_info.call_args
            assert call_args[0][0] == 'pick applied'
            extra = call_args[1]['extra']
            assert extra['duration_ms'] > 0
            assert extra['slot'] == 3

    def test_logging_without_operation_has_no_duration(self, logger):
        with patch.object(logger.logger, 'debug') as mock_debug:
            logger.debug('idle')
            assert 'duration_ms' not in mock_debug.call_args[1]['extra']

    def test_error_logging_with_exception(self, logger):
        """Test error logging with exception object."""
        with patch.object(logger.logger, 'error') as mock_error:
            logger.error('Save failed', error=ValueError("disk full"), session_key='abc')

            call_args = mock_error.call_args
            assert call_args[0][0] == 'Save failed'
            assert call_args[1]['exc_info'] is True
            extra = call_args[1]['extra']
            assert extra['error'] == {'type': 'ValueError', 'message': 'disk full'}
            assert extra['session_key'] == 'abc'

    def test_error_logging_without_exception(self, logger):
        with patch.object(logger.logger, 'error') as mock_error:
            logger.error('Something odd', context='test')

            call_args = mock_error.call_args
            assert 'exc_info' not in call_args[1]
            assert 'error' not in call_args[1]['extra']


class TestDraftContext:
    """Test draft context management."""

    def test_set_draft_context(self):
        clear_context()
        set_draft_context(session_key='abc123', side=Side.RED, operation='submit_pick', slot=4)

        context = log_context.get({})
        assert context == {
            'session_key': 'abc123',
            'side': 'R',
            'operation': 'submit_pick',
            'slot': 4,
        }

    def test_owner_actions_have_no_side(self):
        clear_context()
        set_draft_context(session_key='abc123', side=None)
        assert 'side' not in log_context.get({})

    def test_set_draft_context_merges(self):
        clear_context()
        set_draft_context(session_key='abc123')
        set_draft_context(operation='undo_last')

        context = log_context.get({})
        assert context['session_key'] == 'abc123'
        assert context['operation'] == 'undo_last'

    def test_clear_context(self):
        set_draft_context(session_key='abc123')
        clear_context()
        assert log_context.get({}) == {}


class TestJSONFormatter:
    """Test JSON formatter functionality."""

    @pytest.fixture
    def formatter(self) -> JSONFormatter:
        clear_context()
        return JSONFormatter()

    def test_json_formatter_basic(self, formatter):
        data = json.loads(formatter.format(_record()))

        assert data['message'] == 'Test message'
        assert data['level'] == 'INFO'
        assert data['logger'] == 'test_logger'
        assert 'timestamp' in data
        assert 'context' not in data

    def test_json_formatter_with_extra(self, formatter):
        record = _record('Error message', logging.ERROR)
        record.slot = 7
        record.duration_ms = 150
        record.unserializable = object()

        data = json.loads(formatter.format(record))

        assert data['extra']['slot'] == 7
        assert data['extra']['duration_ms'] == 150
        assert isinstance(data['extra']['unserializable'], str)

    def test_json_formatter_promotes_context(self, formatter):
        set_draft_context(session_key='abc123', operation='submit_pick')
        log_context.set({**log_context.get({}), 'trace_id': 'context123'})

        data = json.loads(formatter.format(_record()))

        assert data['trace_id'] == 'context123'
        assert data['session_key'] == 'abc123'
        assert data['context']['operation'] == 'submit_pick'
        clear_context()

    def test_json_formatter_exception(self, formatter):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            import sys
            record = _record('failed', logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(formatter.format(record))
        assert data['exception']['type'] == 'RuntimeError'
        assert data['exception']['message'] == 'boom'
        assert 'Traceback' in data['exception']['traceback']


class TestSetupLogging:
    """Test logging setup."""

    def test_setup_logging_creates_handlers(self, tmp_path):
        logger = setup_logging('DEBUG', log_dir=str(tmp_path))

        assert logger.name == ROOT_LOGGER_NAME
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert len(logger.handlers) == 2
        assert any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers)
        assert (tmp_path / f'{ROOT_LOGGER_NAME}.json').exists()

        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def test_setup_logging_is_repeatable(self, tmp_path):
        setup_logging('INFO', log_dir=str(tmp_path))
        logger = setup_logging('WARNING', log_dir=str(tmp_path))

        assert len(logger.handlers) == 2
        assert logger.level == logging.WARNING

        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()


class TestLoggerFactory:
    """Test logger factory functions."""

    def test_get_contextual_logger(self):
        logger = get_contextual_logger('services.draft_service.DraftService')

        assert isinstance(logger, ContextualLogger)
        assert logger.logger.name == 'services.draft_service.DraftService'

    def test_get_contextual_logger_unique_instances(self):
        assert get_contextual_logger('a') is not get_contextual_logger('b')
