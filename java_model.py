"""
Java Symbol Model
=================
Read-only view over classes, methods, parameters, fields, annotations and
generic type arguments as resolved by the Java front-end.

Every annotated entity (class, method, field, parameter, type-argument usage,
annotation type) shares the AnnotatedSymbol metadata queries, so rules never
need a separate code path per entity kind.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional


# ============================================================================
# Source Locations
# ============================================================================

@dataclass(frozen=True)
class SourceSpan:
    """Location of a tree node. Lines are 1-based, columns 0-based."""
    file_path: str
    start_line: int
    start_col: int
    end_line: int
    end_col: int


# ============================================================================
# Annotation Metadata
# ============================================================================

class AnnotatedSymbol:
    """Metadata queries shared by everything that carries annotations."""

    annotation_refs: List["AnnotationRef"]

    def annotations(self) -> List["AnnotationRef"]:
        return self.annotation_refs

    def is_annotated_with(self, fqn: str) -> bool:
        """Exact fully-qualified-name match against the direct annotations."""
        return any(a.fqn == fqn for a in self.annotation_refs)


@dataclass(eq=False)
class AnnotationRef:
    """An annotation usage, e.g. the `@NotBlank` written on a field.

    `declaration` is the annotation type's own metadata: a ClassSymbol for
    `@interface` types found in the scanned sources, a LibraryAnnotation for
    known library annotations, None when the type is unknown.
    """
    fqn: str
    span: Optional[SourceSpan] = None
    declaration: Optional[AnnotatedSymbol] = field(default=None, repr=False)

    @property
    def simple_name(self) -> str:
        return self.fqn.rsplit(".", 1)[-1]

    def is_meta_annotated_with(self, fqn: str) -> bool:
        """Check whether the annotation type is itself annotated with `fqn`."""
        if self.declaration is None:
            return False
        return self.declaration.is_annotated_with(fqn)


@dataclass(eq=False)
class LibraryAnnotation(AnnotatedSymbol):
    """An annotation type known by name only (no source in the project)."""
    fqn: str
    annotation_refs: List[AnnotationRef] = field(default_factory=list)

    @classmethod
    def from_meta(cls, fqn: str, meta_annotations: List[str]) -> "LibraryAnnotation":
        return cls(fqn=fqn, annotation_refs=[AnnotationRef(fqn=m) for m in meta_annotations])


# ============================================================================
# Types, Variables, Methods, Classes
# ============================================================================

@dataclass(eq=False)
class DeclaredType(AnnotatedSymbol):
    """A type as written at a declaration site.

    `symbol` is None when the type does not resolve to a class declared in the
    scanned sources (library types, primitives, arrays, type variables).
    `annotation_refs` holds type-use annotations written on this usage,
    e.g. the `@Valid` in `List<@Valid User>`.
    """
    text: str
    span: SourceSpan
    symbol: Optional["ClassSymbol"] = field(default=None, repr=False)
    type_arguments: List["DeclaredType"] = field(default_factory=list)
    parameterized: bool = False
    annotation_refs: List[AnnotationRef] = field(default_factory=list)

    def is_parameterized(self) -> bool:
        return self.parameterized

    def symbol_type(self) -> Optional["ClassSymbol"]:
        return self.symbol


@dataclass(eq=False)
class VariableSymbol(AnnotatedSymbol):
    """A method parameter or a field."""
    name: str
    type: DeclaredType
    kind: str
    span: SourceSpan
    annotation_refs: List[AnnotationRef] = field(default_factory=list)

    @property
    def file_path(self) -> str:
        return self.span.file_path

    def is_variable_symbol(self) -> bool:
        return True


@dataclass(eq=False)
class MethodSymbol(AnnotatedSymbol):
    name: str
    owner: "ClassSymbol" = field(repr=False)
    span: SourceSpan
    parameters: List[VariableSymbol] = field(default_factory=list)
    annotation_refs: List[AnnotationRef] = field(default_factory=list)

    @property
    def file_path(self) -> str:
        return self.span.file_path

    def is_variable_symbol(self) -> bool:
        return False


@dataclass(eq=False)
class ClassSymbol(AnnotatedSymbol):
    """A class, interface, enum, record or annotation type declared in source."""
    fqn: str
    name: str
    kind: str
    span: SourceSpan
    enclosing: Optional["ClassSymbol"] = field(default=None, repr=False)
    type_parameters: List[str] = field(default_factory=list)
    annotation_refs: List[AnnotationRef] = field(default_factory=list)
    fields: List[VariableSymbol] = field(default_factory=list)
    methods: List[MethodSymbol] = field(default_factory=list)
    nested_classes: Dict[str, "ClassSymbol"] = field(default_factory=dict, repr=False)

    @property
    def file_path(self) -> str:
        return self.span.file_path

    def member_symbols(self) -> list:
        """Fields first, then methods, each in declaration order."""
        return list(self.fields) + list(self.methods)


# ============================================================================
# Compilation Units
# ============================================================================

@dataclass(eq=False)
class CompilationUnit:
    """One parsed .java file."""
    path: str
    source_lines: List[str] = field(repr=False)
    package: str = ""
    single_imports: Dict[str, str] = field(default_factory=dict)
    on_demand_imports: List[str] = field(default_factory=list)
    classes: List[ClassSymbol] = field(default_factory=list)
    has_parse_errors: bool = False

    def methods(self) -> List[MethodSymbol]:
        """All methods of all classes, in document order."""
        methods = [m for cls in self.classes for m in cls.methods]
        methods.sort(key=lambda m: (m.span.start_line, m.span.start_col))
        return methods

    def line_content(self, line_number: int) -> str:
        """Get source line content (1-based)."""
        if 1 <= line_number <= len(self.source_lines):
            return self.source_lines[line_number - 1].strip()
        return ""
