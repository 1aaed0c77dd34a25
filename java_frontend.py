"""
Java Front-End (Tree-sitter)
============================
Parses Java sources with tree-sitter and resolves them into the read-only
symbol model in java_model.

Resolution happens in two passes so that types declared in any scanned file
can be referenced from any other:

- add_source(): parse, record package/imports, declare every class
- resolve():    link annotations, fields, methods and declared types

Annotation types that live outside the scanned sources are looked up in a
table of known library annotations and their meta-annotations (what a
compiler would read from bytecode).
"""

from dataclasses import dataclass
from typing import List, Dict, Optional, Tuple, FrozenSet, Union

import tree_sitter_java as tsjava
from tree_sitter import Language, Parser, Node, Tree

from java_model import (
    SourceSpan, AnnotationRef, LibraryAnnotation, DeclaredType,
    VariableSymbol, MethodSymbol, ClassSymbol, CompilationUnit,
)

JAVA_LANG = Language(tsjava.language())

# ============================================================================
# Known Library Annotations
# ============================================================================

_CONSTRAINT = "javax.validation.Constraint"
_SPRING_WEB = "org.springframework.web.bind.annotation"

# annotation FQN -> meta-annotation FQNs
LIBRARY_ANNOTATIONS: Dict[str, List[str]] = {
    "java.lang.Deprecated": [],
    "java.lang.Override": [],
    "java.lang.FunctionalInterface": [],
    "java.lang.SuppressWarnings": [],
    "java.lang.annotation.Documented": [],
    "java.lang.annotation.Retention": [],
    "java.lang.annotation.Target": [],
    "java.lang.annotation.Inherited": [],
    "java.lang.annotation.Repeatable": [],

    "javax.validation.Constraint": [],
    "javax.validation.Valid": [],
    **{f"javax.validation.constraints.{name}": [_CONSTRAINT] for name in (
        "AssertFalse", "AssertTrue", "DecimalMax", "DecimalMin", "Digits",
        "Email", "Future", "FutureOrPresent", "Max", "Min", "Negative",
        "NegativeOrZero", "NotBlank", "NotEmpty", "NotNull", "Null", "Past",
        "PastOrPresent", "Pattern", "Positive", "PositiveOrZero", "Size",
    )},
    **{f"org.hibernate.validator.constraints.{name}": [_CONSTRAINT] for name in (
        "CreditCardNumber", "EAN", "ISBN", "Length", "LuhnCheck", "Range",
        "UniqueElements", "URL", "UUID",
    )},

    "org.springframework.validation.annotation.Validated": [],
    "org.springframework.stereotype.Component": [],
    "org.springframework.stereotype.Controller": ["org.springframework.stereotype.Component"],
    "org.springframework.stereotype.Service": ["org.springframework.stereotype.Component"],
    "org.springframework.stereotype.Repository": ["org.springframework.stereotype.Component"],
    f"{_SPRING_WEB}.RestController": [
        "org.springframework.stereotype.Controller", f"{_SPRING_WEB}.ResponseBody",
    ],
    f"{_SPRING_WEB}.ControllerAdvice": ["org.springframework.stereotype.Component"],
    f"{_SPRING_WEB}.Mapping": [],
    f"{_SPRING_WEB}.RequestMapping": [f"{_SPRING_WEB}.Mapping"],
    f"{_SPRING_WEB}.GetMapping": [f"{_SPRING_WEB}.RequestMapping"],
    f"{_SPRING_WEB}.PostMapping": [f"{_SPRING_WEB}.RequestMapping"],
    f"{_SPRING_WEB}.PutMapping": [f"{_SPRING_WEB}.RequestMapping"],
    f"{_SPRING_WEB}.DeleteMapping": [f"{_SPRING_WEB}.RequestMapping"],
    f"{_SPRING_WEB}.PatchMapping": [f"{_SPRING_WEB}.RequestMapping"],
    f"{_SPRING_WEB}.RequestBody": [],
    f"{_SPRING_WEB}.RequestParam": [],
    f"{_SPRING_WEB}.PathVariable": [],
    f"{_SPRING_WEB}.RequestHeader": [],
    f"{_SPRING_WEB}.ResponseBody": [],
}

# ============================================================================
# Tree Helpers
# ============================================================================

TYPE_DECLARATIONS = {
    "class_declaration": "class",
    "interface_declaration": "interface",
    "enum_declaration": "enum",
    "record_declaration": "record",
    "annotation_type_declaration": "annotation",
}

TYPE_NODES = {
    "type_identifier", "scoped_type_identifier", "generic_type", "array_type",
    "integral_type", "floating_point_type", "boolean_type", "void_type",
    "annotated_type", "wildcard",
}

ANNOTATION_NODES = ("marker_annotation", "annotation")


def node_text(node: Optional[Node]) -> str:
    """Get the source text of a node."""
    return node.text.decode('utf-8') if node is not None and node.text else ""


def get_child_by_type(node: Node, type_name: str) -> Optional[Node]:
    """Get first direct child of a given type."""
    for child in node.children:
        if child.type == type_name:
            return child
    return None


def get_children_by_type(node: Node, type_name: str) -> List[Node]:
    """Get all direct children of a given type."""
    return [c for c in node.children if c.type == type_name]


def get_type_child(node: Node) -> Optional[Node]:
    """Get the declared-type child of a field, parameter or annotated type."""
    type_node = node.child_by_field_name("type")
    if type_node is not None:
        return type_node
    for child in node.children:
        if child.type in TYPE_NODES:
            return child
    return None


def get_annotation_nodes(node: Node) -> List[Node]:
    """Annotations written in a declaration's modifiers."""
    modifiers = get_child_by_type(node, "modifiers")
    if modifiers is None:
        return []
    return [c for c in modifiers.children if c.type in ANNOTATION_NODES]


def _compact(text: str) -> str:
    return "".join(text.split())


def _type_name(node: Node) -> str:
    """Dotted name of a (possibly generic or scoped) class type, no arguments."""
    if node.type == "type_identifier":
        return node_text(node)
    if node.type == "generic_type":
        return _type_name(node.named_children[0])
    if node.type == "scoped_type_identifier":
        parts = [c for c in node.named_children
                 if c.type in ("type_identifier", "scoped_type_identifier", "generic_type")]
        return ".".join(_type_name(p) for p in parts)
    return _compact(node_text(node))


def _body_members(body: Optional[Node]) -> List[Node]:
    if body is None:
        return []
    members = []
    for child in body.named_children:
        if child.type == "enum_body_declarations":
            members.extend(child.named_children)
        else:
            members.append(child)
    return members


def _type_parameter_names(node: Node) -> List[str]:
    params = node.child_by_field_name("type_parameters")
    if params is None:
        return []
    names = []
    for param in get_children_by_type(params, "type_parameter"):
        for child in param.named_children:
            if child.type in ("type_identifier", "identifier"):
                names.append(node_text(child))
                break
    return names


# ============================================================================
# JavaProject — Declaration & Resolution
# ============================================================================

@dataclass(frozen=True)
class _Scope:
    unit: CompilationUnit
    cls: ClassSymbol
    type_params: FrozenSet[str]


class JavaProject:
    """
    A set of Java compilation units resolved against each other.
    Classes are keyed by dotted FQN (package.Outer.Inner).
    """

    def __init__(self, annotation_stubs: Optional[Dict[str, List[str]]] = None):
        stubs = dict(LIBRARY_ANNOTATIONS)
        if annotation_stubs:
            stubs.update(annotation_stubs)
        self.library: Dict[str, LibraryAnnotation] = {
            fqn: LibraryAnnotation.from_meta(fqn, meta) for fqn, meta in stubs.items()
        }
        self.classes: Dict[str, ClassSymbol] = {}
        self.units: List[CompilationUnit] = []
        self.parse_errors = 0
        self._parser = Parser(JAVA_LANG)
        # (class, declaration node, unit, tree) awaiting resolve()
        self._pending: List[Tuple[ClassSymbol, Node, CompilationUnit, Tree]] = []

    @classmethod
    def from_sources(cls, sources: Dict[str, str],
                     annotation_stubs: Optional[Dict[str, List[str]]] = None) -> "JavaProject":
        """Build and resolve a project from {file_path: source_code}."""
        project = cls(annotation_stubs)
        for path, source in sources.items():
            project.add_source(source, path)
        project.resolve()
        return project

    # ------------------------------------------------------------------
    # Pass 1: declarations
    # ------------------------------------------------------------------

    def add_source(self, source_code: str, file_path: str) -> CompilationUnit:
        """Parse a file and declare its classes. Call resolve() afterwards."""
        tree = self._parser.parse(source_code.encode('utf-8'))
        root = tree.root_node
        unit = CompilationUnit(path=file_path, source_lines=source_code.splitlines(),
                               has_parse_errors=root.has_error)
        if root.has_error:
            self.parse_errors += 1

        for child in root.named_children:
            if child.type == "package_declaration":
                for part in child.named_children:
                    if part.type in ("scoped_identifier", "identifier"):
                        unit.package = _compact(node_text(part))
                        break
            elif child.type == "import_declaration":
                self._declare_import(child, unit)
            elif child.type in TYPE_DECLARATIONS:
                self._declare_class(child, unit, tree, None)

        self.units.append(unit)
        return unit

    def _declare_import(self, node: Node, unit: CompilationUnit):
        if get_child_by_type(node, "static") is not None:
            return
        name = None
        for child in node.named_children:
            if child.type in ("scoped_identifier", "identifier"):
                name = _compact(node_text(child))
        if not name:
            return
        if get_child_by_type(node, "asterisk") is not None:
            unit.on_demand_imports.append(name)
        else:
            unit.single_imports[name.rsplit(".", 1)[-1]] = name

    def _declare_class(self, node: Node, unit: CompilationUnit, tree: Tree,
                       enclosing: Optional[ClassSymbol]) -> Optional[ClassSymbol]:
        name = node_text(node.child_by_field_name("name"))
        if not name:
            return None
        if enclosing is not None:
            fqn = f"{enclosing.fqn}.{name}"
        else:
            fqn = f"{unit.package}.{name}" if unit.package else name

        cls = ClassSymbol(
            fqn=fqn, name=name, kind=TYPE_DECLARATIONS[node.type],
            span=self._span(node, unit), enclosing=enclosing,
            type_parameters=_type_parameter_names(node),
        )
        self.classes.setdefault(fqn, cls)
        unit.classes.append(cls)
        if enclosing is not None:
            enclosing.nested_classes[name] = cls
        self._pending.append((cls, node, unit, tree))

        for member in _body_members(node.child_by_field_name("body")):
            if member.type in TYPE_DECLARATIONS:
                self._declare_class(member, unit, tree, cls)
        return cls

    # ------------------------------------------------------------------
    # Pass 2: linking
    # ------------------------------------------------------------------

    def resolve(self):
        """Link annotations, fields, methods and types of all added sources."""
        pending, self._pending = self._pending, []
        for cls, node, unit, _tree in pending:
            self._link_class(cls, node, unit)

    def _link_class(self, cls: ClassSymbol, node: Node, unit: CompilationUnit):
        type_params = set()
        outer = cls
        while outer is not None:
            type_params.update(outer.type_parameters)
            outer = outer.enclosing
        scope = _Scope(unit, cls, frozenset(type_params))

        cls.annotation_refs = self._annotations(node, scope)

        if node.type == "record_declaration":
            components = node.child_by_field_name("parameters")
            if components is None:
                components = get_child_by_type(node, "formal_parameters")
            if components is not None:
                for param in get_children_by_type(components, "formal_parameter"):
                    var = self._variable(param, param.child_by_field_name("name"), "field", scope)
                    if var is not None:
                        cls.fields.append(var)

        for member in _body_members(node.child_by_field_name("body")):
            if member.type in ("field_declaration", "constant_declaration"):
                for declarator in member.children_by_field_name("declarator"):
                    var = self._variable(member, declarator.child_by_field_name("name"),
                                         "field", scope)
                    if var is not None:
                        cls.fields.append(var)
            elif member.type == "method_declaration":
                cls.methods.append(self._method(member, cls, scope))

    def _method(self, node: Node, owner: ClassSymbol, class_scope: _Scope) -> MethodSymbol:
        scope = _Scope(class_scope.unit, owner,
                       class_scope.type_params | frozenset(_type_parameter_names(node)))
        method = MethodSymbol(
            name=node_text(node.child_by_field_name("name")),
            owner=owner,
            span=self._span(node, scope.unit),
            annotation_refs=self._annotations(node, scope),
        )
        params_node = node.child_by_field_name("parameters")
        if params_node is not None:
            for param in params_node.named_children:
                if param.type == "formal_parameter":
                    name_node = param.child_by_field_name("name")
                elif param.type == "spread_parameter":
                    declarator = get_child_by_type(param, "variable_declarator")
                    name_node = declarator.child_by_field_name("name") if declarator else None
                else:
                    continue
                var = self._variable(param, name_node, "parameter", scope)
                if var is not None:
                    method.parameters.append(var)
        return method

    def _variable(self, node: Node, name_node: Optional[Node], kind: str,
                  scope: _Scope) -> Optional[VariableSymbol]:
        type_node = get_type_child(node)
        if name_node is None or type_node is None:
            return None
        declared_type = self._declared_type(type_node, scope)
        if node.type == "spread_parameter":
            # T... is an array of T
            declared_type.symbol = None
            declared_type.parameterized = False
            declared_type.text += "..."
        dimensions = get_child_by_type(name_node.parent, "dimensions")
        if dimensions is not None:
            # `User users[]` declares an array just like `User[] users`
            declared_type.symbol = None
            declared_type.parameterized = False
            declared_type.text += node_text(dimensions)
        return VariableSymbol(
            name=node_text(name_node),
            type=declared_type,
            kind=kind,
            span=self._span(name_node, scope.unit),
            annotation_refs=self._annotations(node, scope),
        )

    def _declared_type(self, node: Node, scope: _Scope) -> DeclaredType:
        span = self._span(node, scope.unit)
        text = node_text(node)

        if node.type in ("annotated_type", "wildcard"):
            annotations = [self._annotation_ref(c, scope)
                           for c in node.children if c.type in ANNOTATION_NODES]
            inner = get_type_child(node) if node.type == "annotated_type" else None
            if inner is None:
                return DeclaredType(text=text, span=span, annotation_refs=annotations)
            declared = self._declared_type(inner, scope)
            declared.span = span
            declared.text = text
            declared.annotation_refs = annotations + declared.annotation_refs
            return declared

        if node.type == "generic_type":
            arguments_node = get_child_by_type(node, "type_arguments")
            arguments = []
            if arguments_node is not None:
                arguments = [self._declared_type(arg, scope)
                             for arg in arguments_node.named_children
                             if arg.type in TYPE_NODES]
            return DeclaredType(text=text, span=span,
                                symbol=self._resolve_class(_type_name(node), scope),
                                type_arguments=arguments, parameterized=True)

        if node.type in ("type_identifier", "scoped_type_identifier"):
            return DeclaredType(text=text, span=span,
                                symbol=self._resolve_class(_type_name(node), scope))

        # primitives, void, arrays
        return DeclaredType(text=text, span=span)

    def _annotations(self, node: Node, scope: _Scope) -> List[AnnotationRef]:
        return [self._annotation_ref(a, scope) for a in get_annotation_nodes(node)]

    def _annotation_ref(self, node: Node, scope: _Scope) -> AnnotationRef:
        name = _compact(node_text(node.child_by_field_name("name")))
        span = self._span(node, scope.unit)
        target = self._resolve_name(name, scope)
        if isinstance(target, ClassSymbol):
            return AnnotationRef(fqn=target.fqn, span=span, declaration=target)
        fqn = target or name
        return AnnotationRef(fqn=fqn, span=span, declaration=self.library.get(fqn))

    # ------------------------------------------------------------------
    # Name resolution
    # ------------------------------------------------------------------

    def _resolve_class(self, name: str, scope: _Scope) -> Optional[ClassSymbol]:
        target = self._resolve_name(name, scope)
        return target if isinstance(target, ClassSymbol) else None

    def _resolve_name(self, name: str, scope: _Scope) -> Union[ClassSymbol, str, None]:
        """Resolve a simple or dotted type name.

        Returns the ClassSymbol for types declared in the scanned sources, the
        FQN string for types known only by name, None when unresolvable.
        """
        head, _, rest = name.partition(".")
        target = self._resolve_simple(head, scope)
        if not rest:
            return target
        if isinstance(target, ClassSymbol):
            for part in rest.split("."):
                target = target.nested_classes.get(part)
                if target is None:
                    return None
            return target
        if isinstance(target, str):
            return f"{target}.{rest}"
        return self.classes.get(name, name)

    def _resolve_simple(self, name: str, scope: _Scope) -> Union[ClassSymbol, str, None]:
        if name in scope.type_params:
            return None

        cls = scope.cls
        while cls is not None:
            if name in cls.nested_classes:
                return cls.nested_classes[name]
            if cls.name == name:
                return cls
            cls = cls.enclosing

        unit = scope.unit
        if name in unit.single_imports:
            fqn = unit.single_imports[name]
            return self.classes.get(fqn, fqn)

        same_package = f"{unit.package}.{name}" if unit.package else name
        if same_package in self.classes:
            return self.classes[same_package]

        for package in unit.on_demand_imports:
            candidate = f"{package}.{name}"
            if candidate in self.classes:
                return self.classes[candidate]
            if candidate in self.library:
                return candidate

        if f"java.lang.{name}" in self.library:
            return f"java.lang.{name}"
        return None

    @staticmethod
    def _span(node: Node, unit: CompilationUnit) -> SourceSpan:
        return SourceSpan(
            file_path=unit.path,
            start_line=node.start_point[0] + 1,
            start_col=node.start_point[1],
            end_line=node.end_point[0] + 1,
            end_col=node.end_point[1],
        )
