from java_frontend import JavaProject, LIBRARY_ANNOTATIONS


def classes_by_name(project):
    return {cls.name: cls for cls in project.classes.values()}


def test_package_imports_and_nested_fqns(project_from):
    project = project_from({
        "Shop.java": """
            package com.acme.shop;

            import java.util.List;
            import javax.validation.constraints.*;
            import static java.util.Collections.emptyList;

            class Building {
              static class Size<T> {
                class Unit { }
              }
            }
        """,
    })
    unit = project.units[0]
    assert unit.package == "com.acme.shop"
    assert unit.single_imports == {"List": "java.util.List"}
    assert unit.on_demand_imports == ["javax.validation.constraints"]
    assert set(project.classes) == {
        "com.acme.shop.Building",
        "com.acme.shop.Building.Size",
        "com.acme.shop.Building.Size.Unit",
    }
    size = project.classes["com.acme.shop.Building.Size"]
    assert size.type_parameters == ["T"]
    assert size.enclosing is project.classes["com.acme.shop.Building"]


def test_annotation_resolution(project_from):
    project = project_from({
        "User.java": """
            import javax.validation.constraints.*;
            import org.springframework.validation.annotation.Validated;

            @Validated
            class User {
              @NotBlank
              @javax.validation.constraints.Email
              @Mystery
              @Deprecated
              private String email;
            }
        """,
    })
    user = classes_by_name(project)["User"]
    assert [a.fqn for a in user.annotations()] == [
        "org.springframework.validation.annotation.Validated",
    ]
    email = user.fields[0]
    assert [a.fqn for a in email.annotations()] == [
        "javax.validation.constraints.NotBlank",
        "javax.validation.constraints.Email",
        "Mystery",
        "java.lang.Deprecated",
    ]
    not_blank, mail, mystery, deprecated = email.annotations()
    assert not_blank.is_meta_annotated_with("javax.validation.Constraint")
    assert mail.is_meta_annotated_with("javax.validation.Constraint")
    assert mystery.declaration is None
    assert not deprecated.is_meta_annotated_with("javax.validation.Constraint")
    assert email.is_annotated_with("javax.validation.constraints.NotBlank")


def test_source_declared_annotation_types(project_from):
    project = project_from({
        "Iban.java": """
            package com.acme;

            import javax.validation.Constraint;

            @Constraint(validatedBy = IbanValidator.class)
            @interface Iban { }

            class Account {
              @Iban
              private String number;
            }
        """,
    })
    account = project.classes["com.acme.Account"]
    iban = account.fields[0].annotations()[0]
    assert iban.fqn == "com.acme.Iban"
    assert iban.declaration is project.classes["com.acme.Iban"]
    assert iban.declaration.kind == "annotation"
    assert iban.is_meta_annotated_with("javax.validation.Constraint")


def test_declared_types(project_from):
    project = project_from({
        "Command.java": """
            import java.util.List;
            import java.util.Map;
            import javax.validation.Valid;

            class User { }

            class Building {
              static class Size<T> { }
            }

            class Command<T> {
              private User owner;
              private List<@Valid User> members;
              private Building.Size<User> office;
              private Building.Size company;
              private T payload;
              private int count;
              private User[] history;
              private User legacy[], current;
              private Map.Entry<String, ? extends User> entry;
            }
        """,
    })
    classes = classes_by_name(project)
    fields = {f.name: f for f in classes["Command"].fields}

    assert fields["owner"].type.symbol_type() is classes["User"]
    assert not fields["owner"].type.is_parameterized()

    members = fields["members"].type
    assert members.is_parameterized()
    assert members.symbol_type() is None
    (argument,) = members.type_arguments
    assert argument.symbol_type() is classes["User"]
    assert [a.fqn for a in argument.annotations()] == ["javax.validation.Valid"]

    office = fields["office"].type
    assert office.symbol_type() is classes["Size"]
    assert office.type_arguments[0].symbol_type() is classes["User"]
    assert office.text == "Building.Size<User>"

    assert fields["company"].type.symbol_type() is classes["Size"]
    assert not fields["company"].type.is_parameterized()

    assert fields["payload"].type.symbol_type() is None
    assert fields["count"].type.symbol_type() is None
    assert fields["history"].type.symbol_type() is None
    assert fields["legacy"].type.symbol_type() is None
    assert fields["legacy"].type.text == "User[]"
    assert fields["current"].type.symbol_type() is classes["User"]

    entry = fields["entry"].type
    assert entry.is_parameterized()
    assert [t.symbol_type() for t in entry.type_arguments] == [None, None]


def test_type_variable_shadows_class_name(project_from):
    project = project_from({
        "Box.java": """
            class User { }

            class Box<User> {
              private User content;
            }
        """,
    })
    box = classes_by_name(project)["Box"]
    assert box.fields[0].type.symbol_type() is None


def test_cross_file_same_package_resolution(project_from):
    project = project_from({
        "a/User.java": """
            package com.acme.model;

            class User { }
        """,
        "a/Command.java": """
            package com.acme.model;

            class Command {
              private User owner;
            }
        """,
        "b/Api.java": """
            package com.acme.web;

            import com.acme.model.Command;

            class Api {
              void handle(Command command, com.acme.model.User user, User missing) { }
            }
        """,
    })
    command = project.classes["com.acme.model.Command"]
    assert command.fields[0].type.symbol_type() is project.classes["com.acme.model.User"]

    handle = project.classes["com.acme.web.Api"].methods[0]
    types = [p.type.symbol_type() for p in handle.parameters]
    assert types == [command, project.classes["com.acme.model.User"], None]


def test_members_methods_and_parameters(project_from):
    project = project_from({
        "Api.java": """
            import javax.validation.constraints.NotNull;

            class Api {
              @NotNull private String a, b;

              Api(String a) { }

              public <T> void first(@NotNull T value, String... rest) { }

              static class Inner {
                void nested() { }
              }

              void last() { }
            }

            record Point(@NotNull Integer x, int y) { }

            enum Color {
              RED, GREEN;
              private String hex;
            }

            interface Limits {
              int MAX = 10;
            }
        """,
    })
    classes = classes_by_name(project)
    api = classes["Api"]
    assert [f.name for f in api.fields] == ["a", "b"]
    assert all(f.is_annotated_with("javax.validation.constraints.NotNull") for f in api.fields)
    assert [m.name for m in api.methods] == ["first", "last"]

    first = api.methods[0]
    assert [p.name for p in first.parameters] == ["value", "rest"]
    assert all(p.kind == "parameter" for p in first.parameters)
    assert first.parameters[0].type.symbol_type() is None
    assert first.parameters[1].type.text == "String..."
    assert first.owner is api

    unit = project.units[0]
    assert [m.name for m in unit.methods()] == ["first", "nested", "last"]

    point = classes["Point"]
    assert point.kind == "record"
    assert [f.name for f in point.fields] == ["x", "y"]
    assert point.fields[0].is_annotated_with("javax.validation.constraints.NotNull")

    assert [f.name for f in classes["Color"].fields] == ["hex"]
    assert [f.name for f in classes["Limits"].fields] == ["MAX"]
    assert [m.is_variable_symbol() for m in api.member_symbols()] == [True, True, False, False]


def test_spans_are_declared_type_locations(project_from):
    project = project_from({
        "Command.java": """
            class Command {
              private java.util.List<Command> items;
            }
        """,
    })
    field = project.units[0].classes[0].fields[0]
    span = field.type.span
    assert (span.start_line, span.start_col, span.end_col) == (3, 10, 33)
    assert span.file_path == "Command.java"
    assert field.type.text == "java.util.List<Command>"


def test_annotation_stubs_extend_library():
    project = JavaProject.from_sources(
        {"Account.java": "import com.acme.Iban;\nclass Account { @Iban String number; }\n"},
        annotation_stubs={"com.acme.Iban": ["javax.validation.Constraint"]},
    )
    iban = project.units[0].classes[0].fields[0].annotations()[0]
    assert iban.fqn == "com.acme.Iban"
    assert iban.is_meta_annotated_with("javax.validation.Constraint")
    assert "com.acme.Iban" not in LIBRARY_ANNOTATIONS


def test_parse_errors_are_counted_and_recovered():
    project = JavaProject.from_sources({
        "Broken.java": "class Broken {\n  private String name\n  void ok() { }\n}\n",
    })
    assert project.parse_errors == 1
    assert project.units[0].has_parse_errors
    assert project.units[0].classes[0].name == "Broken"


def test_add_source_after_resolve():
    project = JavaProject()
    project.add_source("class A { }", "A.java")
    project.resolve()
    project.add_source("class B { A a; }", "B.java")
    project.resolve()
    b = project.classes["B"]
    assert b.fields[0].type.symbol_type() is project.classes["A"]
