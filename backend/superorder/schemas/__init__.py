from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from superorder.exceptions import ConfigurationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_config(model: Type[ModelT], data: Any) -> ModelT:
    """
    Accepts a model instance or raw mapping. Validation failures surface as
    ConfigurationError so callers only deal with the domain taxonomy.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {model.__name__}: {e.errors()[0]['msg']}") from e
