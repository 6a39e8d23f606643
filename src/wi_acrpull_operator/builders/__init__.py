"""Builders for operator models and clients."""

from .binding import create_binding_from_object, create_binding_spec_from_spec, validate_binding_spec
from .docker_config import parse_docker_config, render_docker_config
from .exchanger import create_token_exchanger

__all__ = [
    "create_binding_from_object",
    "create_binding_spec_from_spec",
    "validate_binding_spec",
    "render_docker_config",
    "parse_docker_config",
    "create_token_exchanger",
]
