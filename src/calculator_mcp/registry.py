import inspect
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
)

from loguru import logger
from pydantic import BaseModel

from calculator_mcp.errors import (
    CapabilityNotFoundError,
    DuplicateCapabilityError,
    RegistryClosedError,
    ResourceNotFoundError,
)
from calculator_mcp.schemagenerators import BasicSchemaGenerator, CapabilitySchema
from calculator_mcp.validation import NoArguments, Rule

Handler = Callable[..., Any]


class CapabilityKind(str, Enum):
    TOOL = "tool"
    RESOURCE = "resource"
    PROMPT = "prompt"


@lru_cache(maxsize=None)
def compile_uri_template(template: str) -> "re.Pattern[str]":
    """math://constants/{name} -> ^math://constants/(?P<name>[^/]+)$"""
    pattern = ""
    for literal, variable in re.findall(r"([^{]*)(?:\{(\w+)\})?", template):
        pattern += re.escape(literal)
        if variable:
            pattern += f"(?P<{variable}>[^/]+)"
    return re.compile(f"^{pattern}$")


@dataclass(frozen=True)
class CapabilityEntry:
    """
    A registered capability: its declaration plus the code that runs it.
    Owned by the Registry and never mutated after registration.
    """

    kind: CapabilityKind
    schema: CapabilitySchema
    handler: Handler
    args_model: Type[BaseModel] = NoArguments
    rules: Tuple[Rule, ...] = ()

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.handler)

    @property
    def is_template(self) -> bool:
        return self.schema.uri_template is not None

    def match_uri(self, uri: str) -> Optional[Dict[str, str]]:
        """Variables extracted from uri, or None when this resource does not serve it"""
        if self.schema.uri is not None:
            return {} if uri == self.schema.uri else None
        if self.schema.uri_template is not None:
            match = compile_uri_template(self.schema.uri_template).match(uri)
            if match:
                return match.groupdict()
        return None

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"CapabilityEntry(kind={self.kind.value}, name='{self.name}')"


class CapabilityView:
    """Restartable, registration-ordered view over the declarations of one kind"""

    def __init__(self, entries: Iterable[CapabilityEntry]):
        self._entries = entries

    def __iter__(self) -> Iterator[CapabilitySchema]:
        for entry in self._entries:
            yield entry.schema

    def __len__(self) -> int:
        return sum(1 for _ in self._entries)

    def names(self) -> list[str]:
        return [schema.name for schema in self]


class Registry:
    """
    Name-keyed table of tools, resources and prompts.

    All registration happens during startup; ``seal()`` closes the table,
    after which it is only read and can be shared between concurrent
    invocations without locking.
    """

    def __init__(self, schema_generator: Optional[BasicSchemaGenerator] = None):
        self.schema_generator = schema_generator or BasicSchemaGenerator()
        self._entries: Dict[CapabilityKind, Dict[str, CapabilityEntry]] = {
            kind: {} for kind in CapabilityKind
        }
        self._sealed = False

    def register(
        self,
        kind: CapabilityKind,
        schema: CapabilitySchema,
        handler: Handler,
        args_model: Type[BaseModel] = NoArguments,
        rules: Sequence[Rule] = (),
    ) -> CapabilityEntry:
        """Register a single capability, failing on duplicate names"""
        kind = CapabilityKind(kind)
        if self._sealed:
            raise RegistryClosedError(
                f"Cannot register {kind.value} '{schema.name}': registry is sealed"
            )
        table = self._entries[kind]
        if schema.name in table:
            raise DuplicateCapabilityError(kind.value, schema.name)
        if kind == CapabilityKind.RESOURCE:
            self._check_resource_address(schema)

        entry = CapabilityEntry(
            kind=kind,
            schema=schema,
            handler=handler,
            args_model=args_model,
            rules=tuple(rules),
        )
        table[schema.name] = entry
        logger.debug(f"Registered {kind.value}: {schema.name}")
        return entry

    def add(
        self,
        kind: CapabilityKind,
        handler: Handler,
        name: Optional[str] = None,
        description: Optional[str] = None,
        args_model: Type[BaseModel] = NoArguments,
        rules: Sequence[Rule] = (),
        **extra: Any,
    ) -> CapabilityEntry:
        """Generate the declaration from the argument model, then register it"""
        name = name or handler.__name__
        description = description or inspect.getdoc(handler) or f"{kind.value} {name}"
        schema = self.schema_generator.generate_schema(
            name, description, args_model, **extra
        )
        return self.register(kind, schema, handler, args_model, rules)

    def tool(self, name: Optional[str] = None, **options: Any) -> Callable[[Handler], Handler]:
        """
        Decorator for registering tools.

        Usage:
            @registry.tool("calculate", args_model=CalculateArgs)
            def calculate(ctx, args):
                ...
        """

        def decorator(func: Handler) -> Handler:
            self.add(CapabilityKind.TOOL, func, name=name, **options)
            return func

        return decorator

    def resource(
        self,
        name: Optional[str] = None,
        *,
        uri: Optional[str] = None,
        uri_template: Optional[str] = None,
        mime_type: str = "text/plain",
        **options: Any,
    ) -> Callable[[Handler], Handler]:
        """Decorator for registering a resource at a fixed uri or a uri template"""

        def decorator(func: Handler) -> Handler:
            self.add(
                CapabilityKind.RESOURCE,
                func,
                name=name,
                uri=uri,
                uri_template=uri_template,
                mime_type=mime_type,
                **options,
            )
            return func

        return decorator

    def prompt(self, name: Optional[str] = None, **options: Any) -> Callable[[Handler], Handler]:
        """Decorator for registering prompts"""

        def decorator(func: Handler) -> Handler:
            self.add(CapabilityKind.PROMPT, func, name=name, **options)
            return func

        return decorator

    def lookup(self, kind: CapabilityKind, name: str) -> CapabilityEntry:
        """Get a capability by kind and name"""
        kind = CapabilityKind(kind)
        table = self._entries[kind]
        if name not in table:
            logger.debug(f"registry contains {kind.value}s: {list(table)}")
            raise CapabilityNotFoundError(kind.value, name)
        return table[name]

    def resolve_resource(self, uri: str) -> Tuple[CapabilityEntry, Dict[str, str]]:
        """Find the resource serving uri; fixed uris win over templates"""
        resources = self._entries[CapabilityKind.RESOURCE].values()
        for entry in resources:
            if not entry.is_template and entry.match_uri(uri) is not None:
                return entry, {}
        for entry in resources:
            if entry.is_template:
                variables = entry.match_uri(uri)
                if variables is not None:
                    return entry, variables
        raise ResourceNotFoundError(uri)

    def list(self, kind: CapabilityKind) -> CapabilityView:
        """Declarations of one kind in registration order"""
        return CapabilityView(self._entries[CapabilityKind(kind)].values())

    def list_resources(self) -> CapabilityView:
        """Resources served at a fixed uri"""
        return CapabilityView(
            _Filtered(self._entries[CapabilityKind.RESOURCE].values(), templates=False)
        )

    def list_resource_templates(self) -> CapabilityView:
        return CapabilityView(
            _Filtered(self._entries[CapabilityKind.RESOURCE].values(), templates=True)
        )

    def seal(self) -> None:
        """End of the startup phase: no more registrations"""
        self._sealed = True
        logger.info(
            f"Registry ready: {len(self._entries[CapabilityKind.TOOL])} tools, "
            f"{len(self._entries[CapabilityKind.RESOURCE])} resources, "
            f"{len(self._entries[CapabilityKind.PROMPT])} prompts"
        )

    @property
    def ready(self) -> bool:
        return self._sealed

    def available(self, kind: CapabilityKind) -> Set[str]:
        """Names of all registered capabilities of one kind"""
        return set(self._entries[CapabilityKind(kind)].keys())

    def _check_resource_address(self, schema: CapabilitySchema) -> None:
        if (schema.uri is None) == (schema.uri_template is None):
            raise ValueError(
                f"Resource '{schema.name}' requires exactly one of 'uri' or 'uri_template'"
            )
        for entry in self._entries[CapabilityKind.RESOURCE].values():
            if schema.uri is not None and entry.schema.uri == schema.uri:
                raise DuplicateCapabilityError("resource", schema.uri, field="uri")
            if (
                schema.uri_template is not None
                and entry.schema.uri_template == schema.uri_template
            ):
                raise DuplicateCapabilityError(
                    "resource", schema.uri_template, field="uri template"
                )

    def __contains__(self, item: Tuple[CapabilityKind, str]) -> bool:
        kind, name = item
        return name in self._entries[CapabilityKind(kind)]

    def __len__(self) -> int:
        return sum(len(table) for table in self._entries.values())

    def __repr__(self) -> str:
        counts = ", ".join(
            f"{kind.value}s={len(table)}" for kind, table in self._entries.items()
        )
        return f"Registry({counts}, ready={self.ready})"


class _Filtered:
    """Re-iterable filter over resource entries, split by fixed uri vs template"""

    def __init__(self, entries: Iterable[CapabilityEntry], templates: bool):
        self._entries = entries
        self._templates = templates

    def __iter__(self) -> Iterator[CapabilityEntry]:
        return (e for e in self._entries if e.is_template == self._templates)
