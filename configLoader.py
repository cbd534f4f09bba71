from typing import Any, Type, TypeVar

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError
from yaml.nodes import MappingNode, ScalarNode

from logger import logger


class StrictBaseModel(BaseModel, frozen=True):
    model_config = ConfigDict(extra="forbid")


_LINE_PREFIX = "__line__"


class LineNumberLoader(yaml.SafeLoader):
    """SafeLoader that records the source line of each mapping key."""

    def construct_mapping(self, node: MappingNode, deep: bool = False) -> dict[Any, Any]:
        mapping: dict[Any, Any] = {}
        for key_node, value_node in node.value:
            key = self.construct_object(key_node, deep=True)  # type: ignore
            mapping[key] = self.construct_object(value_node, deep=True)  # type: ignore
            if isinstance(key_node, ScalarNode):
                # 1-based, as editors show it
                mapping[f"{_LINE_PREFIX}{key}"] = key_node.start_mark.line + 1
        return mapping


def field_lines(data: dict[str, Any], prefix: str = "") -> dict[str, int]:
    lines: dict[str, int] = {}
    for key, value in data.items():
        if str(key).startswith(_LINE_PREFIX):
            continue
        path = f"{prefix}.{key}" if prefix else str(key)
        line = data.get(f"{_LINE_PREFIX}{key}")
        if line is not None:
            lines[path] = line
        if isinstance(value, dict):
            lines.update(field_lines(value, path))
    return lines


def strip_lines(data: Any) -> Any:
    if isinstance(data, dict):
        return {k: strip_lines(v) for k, v in data.items() if not str(k).startswith(_LINE_PREFIX)}
    if isinstance(data, list):
        return [strip_lines(v) for v in data]
    return data


T = TypeVar('T', bound=BaseModel)


def parse(text: str, cls: Type[T], source: str = "<string>") -> T:
    raw = yaml.load(text, Loader=LineNumberLoader)
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        logger.error_and_exit(f"{source}: expected a mapping at the top level")

    lines = field_lines(raw)
    try:
        return cls(**strip_lines(raw))
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(x) for x in err['loc'])
            logger.error(f"{source}: error in field '{field}': {err['msg']} (line {lines.get(field, 'unknown')})")
        logger.error_and_exit(f"{source}: invalid configuration")
        raise


def load(path: str, cls: Type[T]) -> T:
    with open(path) as f:
        return parse(f.read(), cls, source=path)
