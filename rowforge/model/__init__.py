"""rowforge model layer: entities, their schemas, events and factories."""
from rowforge.model.events import EVENTS, EventBus
from rowforge.model.factory import ModelFactory
from rowforge.model.model import Model
from rowforge.model.query import ModelQuery
from rowforge.model.schema import FieldTransform, ModelSchema

__all__ = [
    "EVENTS",
    "EventBus",
    "FieldTransform",
    "Model",
    "ModelFactory",
    "ModelQuery",
    "ModelSchema",
]
