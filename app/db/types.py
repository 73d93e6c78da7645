"""
JSON-encoded text columns.

Values are stored as JSON text and decoded on read. Reads never raise:
NULL, empty or corrupted text decodes to the column's empty default.
"""
import json
import logging

from sqlalchemy.types import Text, TypeDecorator

logger = logging.getLogger(__name__)


class _JSONText(TypeDecorator):
    impl = Text
    cache_ok = True

    expected_type = object

    @staticmethod
    def empty():
        raise NotImplementedError

    def process_bind_param(self, value, dialect):
        if not value:
            return json.dumps(self.empty())
        try:
            return json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Could not serialize {type(value).__name__} to JSON text: {e}")
            return json.dumps(self.empty())

    def process_result_value(self, value, dialect):
        if not value:
            return self.empty()
        try:
            decoded = json.loads(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Corrupted JSON text column, using empty default: {e}")
            return self.empty()
        if not isinstance(decoded, self.expected_type):
            return self.empty()
        return decoded


class JSONList(_JSONText):
    """List stored as JSON text, read back as [] when missing or invalid."""
    expected_type = list

    @staticmethod
    def empty():
        return []


class JSONDict(_JSONText):
    """Object stored as JSON text, read back as {} when missing or invalid."""
    expected_type = dict

    @staticmethod
    def empty():
        return {}
