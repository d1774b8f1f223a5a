from typing import Any, Optional, Tuple

from kitbase_flags.impl.model.entity import *
from kitbase_flags.impl.model.flag import FlagDefinition
from kitbase_flags.impl.model.segment import SegmentDefinition


class FlagConfiguration(ModelEntity):
    """
    An immutable snapshot of every flag and segment of one environment, as issued by the server.

    A configuration is always replaced as a whole; nothing in it is changed after it is decoded.
    """

    __slots__ = ['_data', '_environment_id', '_schema_version', '_generated_at', '_etag', '_flags', '_segments']

    def __init__(self, data: dict):
        super().__init__(require_dict(data, 'configuration'))
        self._environment_id = opt_str(data, 'environmentId') or ''
        self._schema_version = opt_str(data, 'schemaVersion') or ''
        self._generated_at = opt_str(data, 'generatedAt') or ''
        self._etag = opt_str(data, 'etag')
        self._flags = tuple(FlagDefinition(item) for item in req_dict_list(data, 'flags'))
        self._segments = tuple(SegmentDefinition(item) for item in opt_dict_list(data, 'segments'))

    @classmethod
    def from_json_dict(cls, data: Any, etag: Optional[str] = None) -> 'FlagConfiguration':
        """
        Decodes a configuration. ``etag`` is the validator from the HTTP response headers; it is
        recorded only if the document does not carry its own.

        :raises ParseError: if the document does not have the expected shape
        """
        data = require_dict(data, 'configuration')
        if etag is not None and data.get('etag') is None:
            data = dict(data, etag=etag)
        return cls(data)

    @property
    def environment_id(self) -> str:
        return self._environment_id

    @property
    def schema_version(self) -> str:
        return self._schema_version

    @property
    def generated_at(self) -> str:
        return self._generated_at

    @property
    def etag(self) -> Optional[str]:
        return self._etag

    @property
    def flags(self) -> Tuple[FlagDefinition, ...]:
        return self._flags

    @property
    def segments(self) -> Tuple[SegmentDefinition, ...]:
        return self._segments
