"""
Missing Bean Validation Check
=============================
Flags request-bound controller parameters (and the fields of their classes)
that could be validated with Bean Validation but are missing "@Valid".

A variable is reported when:
- validation is not enabled: no @Valid / @Validated on it, nor on any of its
  generic type arguments (List<@Valid User>), and
- validation is supported: its class, or one of that class's fields, carries
  a constraint annotation (an annotation meta-annotated with @Constraint).
  For parameterized types the type arguments' classes are inspected instead.

Only methods of controller classes that carry a request mapping are checked.
"""

from dataclasses import dataclass
from itertools import chain
from typing import List, Iterator, Optional

from java_model import (
    SourceSpan, AnnotationRef, ClassSymbol, DeclaredType, MethodSymbol,
    VariableSymbol, CompilationUnit,
)

RULE_KEY = "CUSTOM5128"
RULE_NAME = "Missing Bean Validation"
SEVERITY = "MAJOR"

JAVAX_VALIDATION_VALID = "javax.validation.Valid"
SPRING_VALIDATION_VALIDATED = "org.springframework.validation.annotation.Validated"

JAVAX_VALIDATION_CONSTRAINT = "javax.validation.Constraint"

SPRING_CONTROLLER = "org.springframework.stereotype.Controller"
SPRING_REQUEST_MAPPING = "org.springframework.web.bind.annotation.RequestMapping"

VALIDATION_TRIGGERS = frozenset({JAVAX_VALIDATION_VALID, SPRING_VALIDATION_VALIDATED})

MESSAGE_FORMAT = 'Add missing "@Valid" on "{0}" to validate it with "Bean Validation".'


@dataclass
class Finding:
    file_path: str
    line_number: int
    col_offset: int
    end_line: int
    end_col: int
    line_content: str
    variable_name: str
    message: str
    rule_key: str = RULE_KEY
    severity: str = SEVERITY


# ============================================================================
# Controller-Method Classifier
# ============================================================================

def is_controller_annotation(annotation: AnnotationRef) -> bool:
    return annotation.is_meta_annotated_with(SPRING_CONTROLLER)


def is_request_mapping_annotation(annotation: AnnotationRef) -> bool:
    return annotation.is_meta_annotated_with(SPRING_REQUEST_MAPPING)


def is_controller_method(method: MethodSymbol) -> bool:
    """A request-mapped method of a controller class."""
    class_annotations = method.owner.annotations()
    method_annotations = method.annotations()
    return (any(is_controller_annotation(a) for a in class_annotations)
            and any(is_request_mapping_annotation(a) for a in method_annotations))


# ============================================================================
# Validation-Requirement Evaluator
# ============================================================================

def issue_message(variable: VariableSymbol) -> Optional[str]:
    if not validation_enabled(variable) and validation_supported(variable):
        return MESSAGE_FORMAT.format(variable.name)
    return None


def validation_enabled(variable: VariableSymbol) -> bool:
    if any(variable.is_annotated_with(fqn) for fqn in VALIDATION_TRIGGERS):
        return True
    return any(a.fqn in VALIDATION_TRIGGERS for a in type_argument_annotations(variable))


def type_argument_annotations(variable: VariableSymbol) -> Iterator[AnnotationRef]:
    return chain.from_iterable(t.annotations() for t in type_arguments(variable))


def type_arguments(variable: VariableSymbol) -> List[DeclaredType]:
    if not variable.type.is_parameterized():
        return []
    return variable.type.type_arguments


def validation_supported(variable: VariableSymbol) -> bool:
    return any(a.is_meta_annotated_with(JAVAX_VALIDATION_CONSTRAINT)
               for a in annotation_instances(variable))


def annotation_instances(variable: VariableSymbol) -> Iterator[AnnotationRef]:
    """Annotations of the inspected class(es) and their fields, one level deep."""
    if variable.type.is_parameterized():
        return chain.from_iterable(class_and_field_annotations(t.symbol_type())
                                   for t in type_arguments(variable))
    return class_and_field_annotations(variable.type.symbol_type())


def class_and_field_annotations(class_symbol: Optional[ClassSymbol]) -> Iterator[AnnotationRef]:
    if class_symbol is None:
        return iter(())
    field_annotations = (m.annotations() for m in class_symbol.member_symbols()
                         if m.is_variable_symbol())
    return chain(class_symbol.annotations(), chain.from_iterable(field_annotations))


# ============================================================================
# Rule Driver
# ============================================================================

class MissingBeanValidationCheck:
    """
    Visits every method of a compilation unit. For controller methods, checks
    each parameter and then each field declared in the parameter's class.
    """

    def __init__(self):
        self.findings: List[Finding] = []
        self._unit: Optional[CompilationUnit] = None

    def scan_file(self, unit: CompilationUnit) -> List[Finding]:
        self._unit = unit
        for method in unit.methods():
            self.visit_method(method)
        return self.findings

    def visit_method(self, method: MethodSymbol):
        if not is_controller_method(method):
            return
        for parameter in method.parameters:
            self.check_field(parameter)
            class_symbol = parameter.type.symbol_type()
            if class_symbol is None:
                continue
            # fields declared in other files have no reachable declaration
            for member in class_symbol.member_symbols():
                if member.is_variable_symbol() and member.file_path == method.file_path:
                    self.check_field(member)

    def check_field(self, variable: VariableSymbol):
        message = issue_message(variable)
        if message is not None:
            self.report_issue(variable.type.span, message, variable.name)

    def report_issue(self, span: SourceSpan, message: str, variable_name: str = ""):
        line_content = self._unit.line_content(span.start_line) if self._unit else ""
        self.findings.append(Finding(
            file_path=span.file_path,
            line_number=span.start_line,
            col_offset=span.start_col,
            end_line=span.end_line,
            end_col=span.end_col,
            line_content=line_content,
            variable_name=variable_name,
            message=message,
        ))
