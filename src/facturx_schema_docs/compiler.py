"""Schema compilation boundary.

The tree builder never talks to a schema library directly. It consumes a
:class:`CompiledSchema`: the list of global element declarations plus lookup
tables from qualified type name to type definition and from qualified group
name to group definition. Those definitions use the small adapter types
defined here, so any standards-compliant compiler can back them and tests can
build them by hand.

The default implementation, :func:`compile_schema`, relies on the
``xmlschema`` package. Compilation runs in ``lax`` mode by default: schema
errors are logged and the best-effort result is returned, which may hold
fewer global declarations than a clean build.

Example:
        from facturx_schema_docs.compiler import compile_schema

        compiled = compile_schema(["FACTUR-X_EXTENDED.xsd"])
        print([element.qualified_name for element in compiled.elements])

Notes:
* Qualified names are expanded ``{namespace}local`` strings, the
  ``xmlschema`` convention.
* Element references carry the referenced global element's type while
  keeping the occurrence constraints of the referencing particle.
* Wildcards and attributes are not represented.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Union

import xmlschema
from xmlschema.validators import XsdElement, XsdGroup

from .namespaces import split_qname

logger = logging.getLogger(__name__)

XSD_NAMESPACE = "http://www.w3.org/2001/XMLSchema"
XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
VC_NAMESPACE = "http://www.w3.org/2007/XMLSchema-versioning"

BUILTIN_NAMESPACES = frozenset({XSD_NAMESPACE, XML_NAMESPACE, XSI_NAMESPACE, VC_NAMESPACE})

XSD_ANY_TYPE = f"{{{XSD_NAMESPACE}}}anyType"


class SchemaCompilationError(ValueError):
    """Raised in strict mode when an entry schema does not compile."""


class TypeKey(NamedTuple):
    """Identity of a named structured type, used as cycle-detection token."""

    namespace: str
    name: str


@dataclass
class GroupRef:
    """Reference to a named model group (``<xs:group ref="..."/>``)."""

    name: str


@dataclass
class Particle:
    """A compositor: ``sequence``, ``choice``, ``all`` or another group kind."""

    kind: str
    items: List[Union["ElementDecl", "Particle", GroupRef]] = field(default_factory=list)


@dataclass(eq=False)
class SimpleTypeDef:
    name: str = ""


@dataclass(eq=False)
class ComplexTypeDef:
    """A structured type; ``particle`` is ``None`` for simple or empty content."""

    name: str = ""
    particle: Optional[Union[Particle, GroupRef]] = None

    @property
    def key(self) -> Optional[TypeKey]:
        if not self.name:
            return None
        return TypeKey(*split_qname(self.name))

    @property
    def cycle_token(self) -> Any:
        """Named types are tracked by key, anonymous ones by identity."""
        key = self.key
        return key if key is not None else self


TypeDefinition = Union[ComplexTypeDef, SimpleTypeDef]


@dataclass
class ElementDecl:
    """An element declaration or element reference inside a content model.

    Attributes:
        name: Expanded qualified name (or bare local name when unqualified).
        ref_name: Expanded name of the referenced global element, if any.
        local_name: Local name used when no qualified name is available.
        type_name: Expanded name of the declared type, empty if anonymous.
        inline_type: Anonymous type definition, if any.
        min_occurs: Declared minimum occurrence count.
        max_occurs: Declared maximum occurrence count, ``None`` for unbounded.
    """

    name: str = ""
    ref_name: str = ""
    local_name: str = ""
    type_name: str = ""
    inline_type: Optional[TypeDefinition] = None
    min_occurs: Any = 1
    max_occurs: Any = 1

    @property
    def qualified_name(self) -> str:
        return self.ref_name or self.name or self.local_name


@dataclass
class GroupDefinition:
    name: str
    particle: Optional[Particle] = None


@dataclass
class CompiledSchema:
    """Global declarations handed over to the tree builder."""

    elements: List[ElementDecl] = field(default_factory=list)
    types: Dict[str, TypeDefinition] = field(default_factory=dict)
    groups: Dict[str, GroupDefinition] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)


def compile_schema(
    entry_paths: Iterable[Union[str, Path]],
    validation: str = "lax",
    allow: str = "local",
    include_builtin_namespaces: bool = False,
) -> CompiledSchema:
    """Compile the entry schemas and adapt their global declarations.

    Each entry schema is compiled on its own (``xmlschema`` follows local
    imports and includes by itself); results are merged and the first
    declaration of a qualified name wins.

    Args:
        entry_paths: Entry XSD files.
        validation: ``xmlschema`` validation mode (``strict``, ``lax`` or ``skip``).
        allow: ``xmlschema`` resource access mode; ``local`` keeps
            compilation off the network.
        include_builtin_namespaces: Keep XSD / XML / XSI global elements.

    Returns:
        The merged :class:`CompiledSchema`. In ``lax`` and ``skip`` mode,
        entries that fail to compile are logged and contribute nothing.

    Raises:
        SchemaCompilationError: In ``strict`` mode, on the first entry that
            fails to compile.
    """
    compiled = CompiledSchema()
    for entry in entry_paths:
        try:
            schema = xmlschema.XMLSchema(str(entry), validation=validation, allow=allow)
        except (xmlschema.XMLSchemaException, ET.ParseError, OSError) as exc:
            if validation == "strict":
                raise SchemaCompilationError(
                    f"Schema compilation failed for {entry}: {exc}"
                ) from exc
            logger.warning("Schema compilation failed for %s: %s", entry, exc)
            compiled.errors.append(f"{entry}: {exc}")
            continue

        for error in getattr(schema, "all_errors", None) or []:
            logger.warning("Schema compilation error in %s: %s", entry, error)
            compiled.errors.append(str(error))

        _SchemaAdapter(schema, include_builtin_namespaces).merge_into(compiled)

    logger.info(
        "Compiled %d global element(s), %d type(s), %d group(s)",
        len(compiled.elements),
        len(compiled.types),
        len(compiled.groups),
    )
    return compiled


class _SchemaAdapter:
    """Translate ``xmlschema`` components into the adapter types."""

    def __init__(self, schema: Any, include_builtin_namespaces: bool = False) -> None:
        self.schema = schema
        self.include_builtin_namespaces = include_builtin_namespaces
        self._anonymous_types: Dict[int, TypeDefinition] = {}

    def merge_into(self, compiled: CompiledSchema) -> None:
        maps = self.schema.maps
        known = {element.qualified_name for element in compiled.elements}

        for qname, xsd_type in maps.types.items():
            if qname in compiled.types or self._is_builtin(qname):
                continue
            if not hasattr(xsd_type, "is_complex"):
                continue
            compiled.types[qname] = self._convert_named_type(qname, xsd_type)

        for qname, xsd_group in maps.groups.items():
            if qname in compiled.groups or self._is_builtin(qname):
                continue
            if isinstance(xsd_group, XsdGroup):
                compiled.groups[qname] = GroupDefinition(
                    name=qname, particle=self._convert_compositor(xsd_group)
                )

        for qname, xsd_element in maps.elements.items():
            if qname in known or not isinstance(xsd_element, XsdElement):
                continue
            if not self.include_builtin_namespaces and self._is_builtin(qname):
                continue
            compiled.elements.append(self._convert_element(xsd_element))
            known.add(qname)

    def _is_builtin(self, qname: str) -> bool:
        namespace, _ = split_qname(qname)
        return namespace in BUILTIN_NAMESPACES

    def _convert_element(self, xsd_element: Any) -> ElementDecl:
        ref = getattr(xsd_element, "ref", None)
        declaration = ref if ref is not None else xsd_element
        xsd_type = xsd_element.type

        type_name = _declared_type_name(declaration)
        inline_type: Optional[TypeDefinition] = None
        # declared type attribute wins, even when it could not be resolved
        if not type_name and xsd_type is not None and not _is_implicit_any_type(
            declaration, xsd_type
        ):
            if xsd_type.name:
                type_name = xsd_type.name
            else:
                inline_type = self._convert_anonymous_type(xsd_type)

        return ElementDecl(
            name=xsd_element.name or "",
            ref_name=ref.name if ref is not None else "",
            local_name=getattr(xsd_element, "local_name", None) or "",
            type_name=type_name,
            inline_type=inline_type,
            min_occurs=xsd_element.min_occurs,
            max_occurs=xsd_element.max_occurs,
        )

    def _convert_named_type(self, qname: str, xsd_type: Any) -> TypeDefinition:
        if not xsd_type.is_complex():
            return SimpleTypeDef(name=qname)
        definition = ComplexTypeDef(name=qname)
        definition.particle = self._convert_content(xsd_type)
        return definition

    def _convert_anonymous_type(self, xsd_type: Any) -> TypeDefinition:
        # anonymous types of referenced global elements are shared objects
        cached = self._anonymous_types.get(id(xsd_type))
        if cached is not None:
            return cached
        if not xsd_type.is_complex():
            definition: TypeDefinition = SimpleTypeDef()
            self._anonymous_types[id(xsd_type)] = definition
            return definition
        complex_definition = ComplexTypeDef()
        self._anonymous_types[id(xsd_type)] = complex_definition
        complex_definition.particle = self._convert_content(xsd_type)
        return complex_definition

    def _convert_content(self, xsd_type: Any) -> Optional[Union[Particle, GroupRef]]:
        content = getattr(xsd_type, "content", None)
        if not isinstance(content, XsdGroup):
            return None
        converted = self._convert_item(content)
        if isinstance(converted, (Particle, GroupRef)):
            return converted
        return None

    def _convert_compositor(self, xsd_group: Any) -> Particle:
        items = []
        for item in xsd_group:
            converted = self._convert_item(item)
            if converted is not None:
                items.append(converted)
        return Particle(kind=xsd_group.model or "sequence", items=items)

    def _convert_item(self, item: Any) -> Optional[Union[ElementDecl, Particle, GroupRef]]:
        if isinstance(item, XsdElement):
            return self._convert_element(item)
        if isinstance(item, XsdGroup):
            if getattr(item, "ref", None) is not None:
                return GroupRef(name=item.name)
            return self._convert_compositor(item)
        # wildcards are not traversed
        return None


def _declared_type_name(declaration: Any) -> str:
    """Expanded name of the ``type`` attribute as written, or ``""``.

    In lax mode an unresolvable type is replaced by ``xs:anyType``; the
    declared name is kept so the node still shows what the schema asked for.
    """
    elem = getattr(declaration, "elem", None)
    declared = elem.get("type") if elem is not None else None
    if not declared:
        return ""
    try:
        return declaration.schema.resolve_qname(declared.strip())
    except (xmlschema.XMLSchemaException, KeyError, ValueError) as exc:
        logger.debug("Cannot resolve declared type %r: %s", declared, exc)
        return ""


def _is_implicit_any_type(declaration: Any, xsd_type: Any) -> bool:
    """True for elements that declare no type at all (defaulting to anyType)."""
    if xsd_type.name != XSD_ANY_TYPE:
        return False
    elem = getattr(declaration, "elem", None)
    return elem is None or elem.get("type") is None
