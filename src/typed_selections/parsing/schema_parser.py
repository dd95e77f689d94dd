"""Parser for the entity schema DSL.

Example::

    define uuid as string

    resource User {
        id: uuid,
        name: string,
        todos: -> Todo[],
    }

    resource Todo {
        id: uuid,
        title: string,
        author: -> User?,
        metadata: TodoMetadata?,
        content: Content,
        calc summary(length?: number): string,
    }

    map TodoMetadata { priority: number, notes: string? }
    union Content on type { text: TextContent, note: string }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union as TypingUnion

import ply.yacc as yacc

from typed_selections.parsing.schema_lexer import SchemaLexer
from typed_selections.types import (
    SCALAR_TYPE_NAMES,
    ArgDefinition,
    ArgSpec,
    Calculation,
    EntityKind,
    EntityRegistry,
    NestedMap,
    PrimitiveField,
    Relationship,
    Resource,
    ScalarType,
    TypedEntity,
    TypedMap,
    Union,
    UnionField,
)


@dataclass
class TypeRef:
    """Reference to a type, possibly as an array and/or nullable."""

    name: str
    is_array: bool = False
    is_nullable: bool = False


@dataclass
class ArgSpecDSL:
    """A calculation argument before resolution."""

    name: str
    type_ref: TypeRef
    optional: bool = False


@dataclass
class MemberSpec:
    """A field of a resource or map before resolution."""

    name: str
    type_ref: TypeRef
    kind: str = "plain"  # plain, relationship, calc
    args: list[ArgSpecDSL] | None = None
    line: int = 0


@dataclass
class EntitySpec:
    """Specification for a resource or map before resolution."""

    name: str
    kind: EntityKind
    members: list[MemberSpec] = field(default_factory=list)


@dataclass
class UnionSpec:
    """Specification for a union before resolution."""

    name: str
    variants: list[tuple[str, str]]
    tag_field: str | None = None


@dataclass
class AliasSpec:
    """Specification for a scalar alias before resolution."""

    name: str
    base_name: str


class SchemaParser:
    """Parser for the entity schema DSL."""

    tokens = SchemaLexer.tokens

    def __init__(self) -> None:
        self.lexer = SchemaLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore
        self.registry: EntityRegistry = EntityRegistry()
        self._aliases: dict[str, ScalarType] = {}

    def p_schema(self, p: yacc.YaccProduction) -> None:
        """schema : statement_list"""
        p[0] = p[1]

    def p_schema_empty(self, p: yacc.YaccProduction) -> None:
        """schema :"""
        p[0] = []

    def p_statement_list_single(self, p: yacc.YaccProduction) -> None:
        """statement_list : statement"""
        p[0] = [p[1]]

    def p_statement_list_multiple(self, p: yacc.YaccProduction) -> None:
        """statement_list : statement_list statement"""
        p[0] = p[1]
        p[0].append(p[2])

    def p_statement(self, p: yacc.YaccProduction) -> None:
        """statement : alias_def
                     | entity_def
                     | union_def"""
        p[0] = p[1]

    def p_alias_def(self, p: yacc.YaccProduction) -> None:
        """alias_def : DEFINE IDENTIFIER AS IDENTIFIER"""
        p[0] = AliasSpec(name=p[2], base_name=p[4])

    def p_entity_def(self, p: yacc.YaccProduction) -> None:
        """entity_def : entity_keyword IDENTIFIER LBRACE member_list RBRACE
                      | entity_keyword IDENTIFIER LBRACE member_list COMMA RBRACE"""
        p[0] = EntitySpec(name=p[2], kind=p[1], members=p[4])

    def p_entity_def_empty(self, p: yacc.YaccProduction) -> None:
        """entity_def : entity_keyword IDENTIFIER LBRACE RBRACE"""
        p[0] = EntitySpec(name=p[2], kind=p[1], members=[])

    def p_entity_keyword_resource(self, p: yacc.YaccProduction) -> None:
        """entity_keyword : RESOURCE"""
        p[0] = EntityKind.RESOURCE

    def p_entity_keyword_map(self, p: yacc.YaccProduction) -> None:
        """entity_keyword : MAP"""
        p[0] = EntityKind.TYPED_MAP

    def p_union_def(self, p: yacc.YaccProduction) -> None:
        """union_def : UNION IDENTIFIER LBRACE variant_list RBRACE
                     | UNION IDENTIFIER LBRACE variant_list COMMA RBRACE"""
        p[0] = UnionSpec(name=p[2], variants=p[4])

    def p_union_def_tagged(self, p: yacc.YaccProduction) -> None:
        """union_def : UNION IDENTIFIER ON IDENTIFIER LBRACE variant_list RBRACE
                     | UNION IDENTIFIER ON IDENTIFIER LBRACE variant_list COMMA RBRACE"""
        p[0] = UnionSpec(name=p[2], variants=p[6], tag_field=p[4])

    def p_variant_list_single(self, p: yacc.YaccProduction) -> None:
        """variant_list : variant"""
        p[0] = [p[1]]

    def p_variant_list_multiple(self, p: yacc.YaccProduction) -> None:
        """variant_list : variant_list COMMA variant"""
        p[0] = p[1] + [p[3]]

    def p_variant(self, p: yacc.YaccProduction) -> None:
        """variant : IDENTIFIER COLON IDENTIFIER"""
        p[0] = (p[1], p[3])

    def p_member_list_single(self, p: yacc.YaccProduction) -> None:
        """member_list : member"""
        p[0] = [p[1]]

    def p_member_list_multiple(self, p: yacc.YaccProduction) -> None:
        """member_list : member_list COMMA member"""
        p[0] = p[1] + [p[3]]

    def p_member_plain(self, p: yacc.YaccProduction) -> None:
        """member : IDENTIFIER COLON type_ref"""
        p[0] = MemberSpec(name=p[1], type_ref=p[3], line=p.lineno(1))

    def p_member_relationship(self, p: yacc.YaccProduction) -> None:
        """member : IDENTIFIER COLON ARROW type_ref"""
        p[0] = MemberSpec(name=p[1], type_ref=p[4], kind="relationship", line=p.lineno(1))

    def p_member_calc(self, p: yacc.YaccProduction) -> None:
        """member : CALC IDENTIFIER COLON type_ref"""
        p[0] = MemberSpec(name=p[2], type_ref=p[4], kind="calc", line=p.lineno(2))

    def p_member_calc_no_args(self, p: yacc.YaccProduction) -> None:
        """member : CALC IDENTIFIER LPAREN RPAREN COLON type_ref"""
        p[0] = MemberSpec(name=p[2], type_ref=p[6], kind="calc", args=[], line=p.lineno(2))

    def p_member_calc_args(self, p: yacc.YaccProduction) -> None:
        """member : CALC IDENTIFIER LPAREN arg_list RPAREN COLON type_ref
                  | CALC IDENTIFIER LPAREN arg_list COMMA RPAREN COLON type_ref"""
        p[0] = MemberSpec(name=p[2], type_ref=p[len(p) - 1], kind="calc", args=p[4], line=p.lineno(2))

    def p_arg_list_single(self, p: yacc.YaccProduction) -> None:
        """arg_list : arg"""
        p[0] = [p[1]]

    def p_arg_list_multiple(self, p: yacc.YaccProduction) -> None:
        """arg_list : arg_list COMMA arg"""
        p[0] = p[1] + [p[3]]

    def p_arg_required(self, p: yacc.YaccProduction) -> None:
        """arg : IDENTIFIER COLON type_ref"""
        p[0] = ArgSpecDSL(name=p[1], type_ref=p[3])

    def p_arg_optional(self, p: yacc.YaccProduction) -> None:
        """arg : IDENTIFIER QUESTION COLON type_ref"""
        p[0] = ArgSpecDSL(name=p[1], type_ref=p[4], optional=True)

    def p_type_ref_simple(self, p: yacc.YaccProduction) -> None:
        """type_ref : IDENTIFIER"""
        p[0] = TypeRef(name=p[1])

    def p_type_ref_nullable(self, p: yacc.YaccProduction) -> None:
        """type_ref : IDENTIFIER QUESTION"""
        p[0] = TypeRef(name=p[1], is_nullable=True)

    def p_type_ref_array(self, p: yacc.YaccProduction) -> None:
        """type_ref : IDENTIFIER LBRACKET RBRACKET"""
        p[0] = TypeRef(name=p[1], is_array=True)

    def p_type_ref_nullable_array(self, p: yacc.YaccProduction) -> None:
        """type_ref : IDENTIFIER LBRACKET RBRACKET QUESTION"""
        p[0] = TypeRef(name=p[1], is_array=True, is_nullable=True)

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(
                f"Syntax error at '{p.value}' (line {p.lineno}, column {self.lexer.column(p.lexpos)})"
            )
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> EntityRegistry:
        """Parse schema definitions and return a populated, unfrozen EntityRegistry."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self.registry = EntityRegistry()
        self._aliases = {}
        self.lexer.reset(data)

        specs = self.parser.parse(lexer=self.lexer.lexer)
        if specs is None:
            specs = []

        self._resolve_specs(specs)
        return self.registry

    def _resolve_specs(self, specs: list[AliasSpec | EntitySpec | UnionSpec]) -> None:
        """Resolve all specs into entities using two-phase resolution.

        Phase 1: Pre-register stubs for every resource, map and union so that
        self-referential and mutually referential entities can resolve.
        Phase 2: Resolve aliases, then populate and complete every stub.
        """
        # Phase 1: Pre-register stubs
        for spec in specs:
            if isinstance(spec, EntitySpec):
                self._check_new_name(spec.name)
                self.registry.register_stub(spec.name, spec.kind)
            elif isinstance(spec, UnionSpec):
                self._check_new_name(spec.name)
                self.registry.register_stub(spec.name, EntityKind.UNION)

        # Phase 2a: Aliases may chain, resolve iteratively
        unresolved = [spec for spec in specs if isinstance(spec, AliasSpec)]
        for spec in unresolved:
            self._check_new_name(spec.name)
            if spec.name in {s.name for s in unresolved if s is not spec}:
                raise ValueError(f"Type '{spec.name}' is already defined")

        max_iterations = len(unresolved) + 1
        for _ in range(max_iterations):
            if not unresolved:
                break
            still_unresolved: list[AliasSpec] = []
            for spec in unresolved:
                base = SCALAR_TYPE_NAMES.get(spec.base_name) or self._aliases.get(spec.base_name)
                if base is None:
                    still_unresolved.append(spec)
                else:
                    self._aliases[spec.name] = base
            if len(still_unresolved) == len(unresolved):
                remaining = [s.name for s in still_unresolved]
                raise ValueError(f"Cannot resolve aliases: {remaining}")
            unresolved = still_unresolved

        # Phase 2b: Populate stubs in place, then complete their registration
        for spec in specs:
            if isinstance(spec, EntitySpec):
                self._resolve_entity_spec(spec)
            elif isinstance(spec, UnionSpec):
                self._resolve_union_spec(spec)

    def _check_new_name(self, name: str) -> None:
        if name in SCALAR_TYPE_NAMES or name in self.registry or name in self._aliases:
            raise ValueError(f"Type '{name}' is already defined")

    def _resolve_name(self, name: str) -> TypingUnion[ScalarType, TypedEntity]:
        """Resolve a type name to a scalar or an entity."""
        scalar = SCALAR_TYPE_NAMES.get(name) or self._aliases.get(name)
        if scalar is not None:
            return scalar
        entity = self.registry.get(name)
        if entity is None:
            raise ValueError(f"Unknown type '{name}'")
        return entity

    def _resolve_entity_spec(self, spec: EntitySpec) -> None:
        stub = self.registry.get(spec.name)
        assert isinstance(stub, Resource)
        seen: set[str] = set()
        for member in spec.members:
            if member.name in seen:
                raise ValueError(f"Duplicate field '{member.name}' in '{spec.name}' (line {member.line})")
            seen.add(member.name)
            self._resolve_member(stub, member)
        self.registry.register(stub)

    def _resolve_member(self, entity: Resource, member: MemberSpec) -> None:
        ref = member.type_ref
        target = self._resolve_name(ref.name)
        where = f"'{entity.name}.{member.name}' (line {member.line})"

        if member.kind == "relationship":
            if not isinstance(target, Resource) or isinstance(target, TypedMap):
                raise ValueError(f"Relationship {where} must target a resource")
            entity.add_field(Relationship(member.name, target, ref.is_array, ref.is_nullable))
        elif member.kind == "calc":
            args = None
            if member.args is not None:
                args = ArgSpec([self._resolve_arg(arg, where) for arg in member.args])
            entity.add_field(Calculation(member.name, target, args, ref.is_array, ref.is_nullable))
        elif isinstance(target, ScalarType):
            entity.add_primitive(PrimitiveField(member.name, target, ref.is_nullable, ref.is_array))
        elif isinstance(target, TypedMap):
            entity.add_field(NestedMap(member.name, target, ref.is_array, ref.is_nullable))
        elif isinstance(target, Union):
            entity.add_field(UnionField(member.name, target, ref.is_array, ref.is_nullable))
        else:
            raise ValueError(f"Field {where} refers to resource '{ref.name}'; declare it as '-> {ref.name}'")

    def _resolve_arg(self, arg: ArgSpecDSL, where: str) -> ArgDefinition:
        scalar = self._resolve_name(arg.type_ref.name)
        if not isinstance(scalar, ScalarType):
            raise ValueError(f"Argument '{arg.name}' of {where} must have a scalar type")
        return ArgDefinition(
            name=arg.name,
            scalar=scalar,
            required=not arg.optional,
            nullable=arg.type_ref.is_nullable,
            array=arg.type_ref.is_array,
        )

    def _resolve_union_spec(self, spec: UnionSpec) -> None:
        stub = self.registry.get(spec.name)
        assert isinstance(stub, Union)
        for tag, type_name in spec.variants:
            if tag in stub.variants:
                raise ValueError(f"Duplicate variant '{tag}' in union '{spec.name}'")
            variant = self._resolve_name(type_name)
            if isinstance(variant, Union):
                raise ValueError(f"Union '{spec.name}' variant '{tag}' cannot be another union")
            stub.variants[tag] = variant
        stub.tag_field = spec.tag_field
        self.registry.register(stub)
