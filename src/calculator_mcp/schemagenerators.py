import json
from enum import Enum
from pathlib import Path
from typing import (
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Type,
    Union,
    get_args,
    get_origin,
)

from loguru import logger
from pydantic import BaseModel, ConfigDict
from pydantic_core import PydanticUndefined


class ParameterSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    param_type: str
    description: Optional[str] = None
    required: bool = False
    enum: Optional[tuple[Any, ...]] = None
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    default: Optional[Any] = None
    nullable: Optional[bool] = None


class CapabilitySchema(BaseModel):
    """Declaration of a tool, resource or prompt: what it is called and what it accepts"""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: tuple[ParameterSchema, ...] = ()
    required: tuple[str, ...] = ()
    uri: Optional[str] = None
    uri_template: Optional[str] = None
    mime_type: Optional[str] = None

    def parameter(self, name: str) -> ParameterSchema:
        for param in self.parameters:
            if param.name == name:
                return param
        raise KeyError(name)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)

    def __repr__(self) -> str:
        return f"CapabilitySchema({self.to_dict()})"

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string for easy viewing/editing"""
        return self.model_dump_json(indent=indent, exclude_none=True)

    def to_file(self, file_path: Path, indent: int = 2) -> None:
        """Write schema to a JSON file

        Args:
            file_path: Path where the JSON file will be saved
            indent: Number of spaces for indentation in the JSON file
        """
        with file_path.open("w") as f:
            f.write(self.to_json(indent=indent))

    @classmethod
    def from_json(cls, json_str: str) -> "CapabilitySchema":
        """Create schema from JSON string"""
        return cls.model_validate(json.loads(json_str))


class BasicSchemaGenerator:
    """Builds a CapabilitySchema from a pydantic argument model"""

    _TYPE_MAP = {
        int: "integer",
        float: "number",
        str: "string",
        bool: "boolean",
        list: "array",
        dict: "object",
    }

    def generate_schema(
        self,
        name: str,
        description: str,
        args_model: Optional[Type[BaseModel]] = None,
        **extra: Any,
    ) -> CapabilitySchema:
        parameters = []
        required = []

        if args_model is not None:
            for field_name, field in args_model.model_fields.items():
                param_name = field.alias or field_name
                is_required = field.is_required()
                param = self._process_type(param_name, field.annotation)
                updates: Dict[str, Any] = {"required": is_required}
                if field.description:
                    updates["description"] = field.description
                if not is_required and field.default not in (None, PydanticUndefined):
                    default = field.default
                    updates["default"] = (
                        default.value if isinstance(default, Enum) else default
                    )
                updates.update(self._process_bounds(field.metadata))
                parameters.append(param.model_copy(update=updates))
                if is_required:
                    required.append(param_name)

        schema = CapabilitySchema(
            name=name,
            description=description,
            parameters=tuple(parameters),
            required=tuple(required),
            **extra,
        )
        logger.debug(f"generated schema for {name}: {schema.to_dict()}")
        return schema

    def _process_bounds(self, metadata: List[Any]) -> Dict[str, Any]:
        """Read inclusive ge/le constraints off the field metadata"""
        bounds: Dict[str, Any] = {}
        for item in metadata:
            for attr, key in (("ge", "minimum"), ("le", "maximum")):
                value = getattr(item, attr, None)
                if value is not None:
                    bounds[key] = value
        return bounds

    def _process_type(self, name: str, param_type: Any) -> ParameterSchema:
        """Process a type hint to generate the appropriate schema"""
        origin = get_origin(param_type)
        args = get_args(param_type)

        # Handle Optional[X] -> Union[X, None]
        if origin is Union and type(None) in args:
            non_none_type = next(arg for arg in args if arg is not type(None))
            param_schema = self._process_type(name, non_none_type)
            return param_schema.model_copy(update={"nullable": True})

        if origin is Literal:
            return ParameterSchema(name=name, param_type="string", enum=tuple(args))

        if isinstance(param_type, type) and issubclass(param_type, Enum):
            return ParameterSchema(
                name=name,
                param_type="string",
                enum=tuple(item.value for item in param_type),
            )

        if param_type in self._TYPE_MAP:
            return ParameterSchema(name=name, param_type=self._TYPE_MAP[param_type])

        # Default to string for unknown types
        return ParameterSchema(name=name, param_type="string")


class McpAdapter:
    """Formats capability schemas the way MCP list responses expect them"""

    @classmethod
    def format_schema(cls, schema: CapabilitySchema) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {p.name: cls.format_parameter(p) for p in schema.parameters},
            "required": list(schema.required),
        }

    @classmethod
    def format_parameter(cls, parameter: ParameterSchema) -> Dict[str, Any]:
        param_dict: Dict[str, Any] = {"type": parameter.param_type}
        if parameter.nullable:
            param_dict["type"] = [parameter.param_type, "null"]
        if parameter.description:
            param_dict["description"] = parameter.description
        if parameter.enum:
            param_dict["enum"] = list(parameter.enum)
        if parameter.minimum is not None:
            param_dict["minimum"] = parameter.minimum
        if parameter.maximum is not None:
            param_dict["maximum"] = parameter.maximum
        if parameter.default is not None:
            param_dict["default"] = parameter.default
        return param_dict

    @classmethod
    def format_prompt_arguments(cls, schema: CapabilitySchema) -> List[Dict[str, Any]]:
        """Prompt arguments are always strings on the wire, only name and flags matter"""
        return [
            {
                "name": p.name,
                "description": p.description,
                "required": p.required,
            }
            for p in schema.parameters
        ]
