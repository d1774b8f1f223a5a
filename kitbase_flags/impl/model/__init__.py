from .configuration import FlagConfiguration
from .entity import ModelEntity
from .flag import FlagDefinition, FlagRule
from .segment import SegmentDefinition, SegmentRule
