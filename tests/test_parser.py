from __future__ import annotations

import pytest

from headerdb.database import HeaderDatabase
from headerdb.decls import DeclKind, Linkage, VarDefinition
from headerdb.errors import AvailabilityConflictError, TentativeDefinitionError
from headerdb.models import Arch, AvailabilityValues, CompilationType, Position
from headerdb.parser import HeaderParser, mask_availability_macros
from headerdb.preprocessor import parse_number, predefined_macros


ARM_9 = CompilationType(Arch.ARM, 9)
ARM64_21 = CompilationType(Arch.ARM64, 21)
MIPS_9 = CompilationType(Arch.MIPS, 9)
X86_9 = CompilationType(Arch.X86, 9)


SAMPLE = """\
#ifndef _SAMPLE_H
#define _SAMPLE_H

void foo(void) __attribute__((annotate("introduced_in=9")));
__attribute__((annotate("introduced_in=14"))) extern int sample_var;
extern int sample_defined = 3;
static inline int add(int a, int b) {
  int sum = a + b;
  return sum;
}
void gone(void) __attribute__((unavailable));
typedef int sample_t;
char *dup_string(const char *s) __attribute__((annotate("introduced_in_32=21")));
extern void (*handler)(int);

#if __ANDROID_API__ >= 21
void new_api(void) __attribute__((annotate("introduced_in=21")));
#endif

#if defined(__LP64__)
void only64(void);
#elif defined(__mips__)
void only_mips(void);
#else
void only32(void);
#endif

#endif
"""


def _parse(text: str, compilation_type: CompilationType):
    return HeaderParser().parse_text(text, "sample.h", compilation_type)


def _by_name(unit) -> dict:
    return {decl.identifier: decl for decl in unit.walk()}


def test_function_declaration_with_annotation():
    decls = _by_name(_parse(SAMPLE, ARM_9))

    foo = decls["foo"]
    assert foo.kind == DeclKind.FUNCTION
    assert foo.linkage == Linkage.EXTERNAL
    assert not foo.has_body
    assert foo.annotations == ("introduced_in=9",)
    assert foo.location.filename == "sample.h"
    assert foo.location.start == Position(4, 1)
    assert foo.location.end.line == 4


def test_variable_definition_status():
    decls = _by_name(_parse(SAMPLE, ARM_9))

    assert decls["sample_var"].kind == DeclKind.VARIABLE
    assert decls["sample_var"].var_definition == VarDefinition.DECLARATION_ONLY
    assert decls["sample_var"].annotations == ("introduced_in=14",)
    assert decls["sample_defined"].var_definition == VarDefinition.DEFINITION
    assert decls["handler"].kind == DeclKind.VARIABLE


def test_inline_definition_and_locals():
    decls = _by_name(_parse(SAMPLE, ARM_9))

    add = decls["add"]
    assert add.kind == DeclKind.FUNCTION
    assert add.has_body
    assert add.linkage == Linkage.INTERNAL
    assert [child.identifier for child in add.children] == ["sum"]
    assert add.children[0].in_function
    assert not add.children[0].file_scope


def test_pointer_returning_function_and_other_kinds():
    decls = _by_name(_parse(SAMPLE, ARM_9))

    assert decls["dup_string"].kind == DeclKind.FUNCTION
    assert decls["dup_string"].annotations == ("introduced_in_32=21",)
    assert decls["gone"].unavailable
    assert decls["sample_t"].kind == DeclKind.OTHER


def test_conditionals_follow_compilation_type():
    arm = _by_name(_parse(SAMPLE, ARM_9))
    arm64 = _by_name(_parse(SAMPLE, ARM64_21))
    mips = _by_name(_parse(SAMPLE, MIPS_9))

    assert "new_api" not in arm
    assert "only32" in arm and "only64" not in arm and "only_mips" not in arm
    assert "new_api" in arm64
    assert "only64" in arm64 and "only32" not in arm64
    assert "only_mips" in mips and "only32" not in mips


def test_define_and_undef_update_conditions():
    text = """\
#define FEATURE_LEVEL 3
#if FEATURE_LEVEL > 2
void feature(void);
#endif
#undef FEATURE_LEVEL
#ifndef FEATURE_LEVEL
void fallback(void);
#endif
"""
    decls = _by_name(_parse(text, ARM_9))

    assert "feature" in decls
    assert "fallback" in decls


def test_availability_macros_become_annotations():
    text = """\
int baz(void) __INTRODUCED_IN(21);
void later(void) __INTRODUCED_IN_FUTURE;
"""
    decls = _by_name(_parse(text, ARM64_21))

    assert decls["baz"].annotations == ("introduced_in=21",)
    assert decls["later"].annotations == ("introduced_in_future",)


def test_availability_macros_on_variables():
    text = """\
extern int version_code __INTRODUCED_IN(21);
extern int first __INTRODUCED_IN(21), second __INTRODUCED_IN_64(23);
"""
    decls = _by_name(_parse(text, ARM64_21))

    assert decls["version_code"].kind == DeclKind.VARIABLE
    assert decls["version_code"].var_definition == VarDefinition.DECLARATION_ONLY
    assert decls["version_code"].annotations == ("introduced_in=21",)
    assert decls["first"].annotations == ("introduced_in=21",)
    assert decls["second"].annotations == ("introduced_in_64=23",)


def test_availability_macro_definitions_are_left_alone():
    text = """\
#define __INTRODUCED_IN(api_level) __attribute__((annotate("introduced_in=" #api_level)))
/* __INTRODUCED_IN(9) */
void current(void) __INTRODUCED_IN(21) __DEPRECATED_IN(23);
"""
    decls = _by_name(_parse(text, ARM_9))

    assert decls["current"].annotations == ("introduced_in=21", "deprecated_in=23")
    assert decls["current"].location.start == Position(3, 1)


def test_mask_availability_macros_keeps_offsets():
    source = b"int baz(void) __INTRODUCED_IN(21);\nvoid later(void) __INTRODUCED_IN_FUTURE;\n"

    masked, found = mask_availability_macros(source)

    assert len(masked) == len(source)
    assert masked.count(b"\n") == source.count(b"\n")
    assert b"__INTRODUCED_IN" not in masked
    assert found == [
        (source.index(b"__INTRODUCED_IN("), "introduced_in=21"),
        (source.index(b"__INTRODUCED_IN_FUTURE"), "introduced_in_future"),
    ]


def test_extern_c_block_declarations_are_reported():
    text = """\
extern "C" {
void foo(void) __attribute__((annotate("introduced_in=9")));
extern int bar;
}
"""
    database = HeaderDatabase()
    database.ingest(ARM_9, _parse(text, ARM_9))

    assert "foo" in database
    assert "bar" in database
    assert database["foo"].calculate_availability().global_availability == AvailabilityValues(
        introduced=9
    )


def test_cplusplus_guarded_extern_c_is_walked():
    text = """\
#ifdef __cplusplus
extern "C" {
#endif
void foo(void) __INTRODUCED_IN(21);
int bar(int value);
#ifdef __cplusplus
}
#endif
"""
    decls = _by_name(_parse(text, ARM64_21))

    assert "foo" in decls
    assert "bar" in decls
    assert decls["foo"].annotations == ("introduced_in=21",)


def test_tentative_definition_in_extern_c_block_is_fatal():
    database = HeaderDatabase()

    with pytest.raises(TentativeDefinitionError):
        database.ingest(ARM_9, _parse('extern "C" {\nint common_value;\n}\n', ARM_9))


def test_macro_values_are_expanded_in_conditions():
    text = """\
#define MY_API __ANDROID_API__
#define AT_LEAST_21 (MY_API >= 21)
#define SELF SELF
#if MY_API >= 21
void aliased(void);
#endif
#if AT_LEAST_21
void expression(void);
#endif
#if SELF
void recursive(void);
#endif
"""
    old = _by_name(_parse(text, ARM_9))
    new = _by_name(_parse(text, ARM64_21))

    assert "aliased" in new and "expression" in new
    assert "aliased" not in old and "expression" not in old
    assert "recursive" not in new


def test_unavailable_is_matched_as_attribute_name():
    text = """\
void soon(void) __attribute__((deprecated("unavailable soon")));
void hidden(void) __attribute__((__unavailable__));
void both(void) __attribute__((annotate("introduced_in=9"), unavailable));
"""
    decls = _by_name(_parse(text, ARM_9))

    assert not decls["soon"].unavailable
    assert decls["soon"].annotations == ()
    assert decls["hidden"].unavailable
    assert decls["both"].unavailable
    assert decls["both"].annotations == ("introduced_in=9",)


def test_header_ingests_into_database():
    database = HeaderDatabase()
    database.ingest(ARM_9, _parse(SAMPLE, ARM_9))
    database.ingest(ARM64_21, _parse(SAMPLE, ARM64_21))

    assert set(database.symbols) == {
        "foo",
        "sample_var",
        "sample_defined",
        "add",
        "dup_string",
        "handler",
        "new_api",
        "only32",
        "only64",
    }
    assert database["add"].calculate_availability().empty()
    dup_string = database["dup_string"].calculate_availability()
    assert dup_string.arch_availability[Arch.ARM] == AvailabilityValues(introduced=21)
    assert dup_string.arch_availability[Arch.ARM64].empty()
    assert database["only32"].has_declaration(ARM_9)
    assert not database["only32"].has_declaration(ARM64_21)


def test_end_to_end_matching_annotations():
    header = 'void foo(void) __attribute__((annotate("introduced_in=9")));\n'
    database = HeaderDatabase()
    database.ingest(ARM_9, _parse(header, ARM_9))
    database.ingest(ARM64_21, _parse(header, ARM64_21))

    symbol = database["foo"]
    assert len(symbol.declarations) == 1
    availability = symbol.calculate_availability()
    assert availability.global_availability == AvailabilityValues(introduced=9)
    assert all(values.empty() for values in availability.arch_availability.values())
    assert symbol.has_declaration(ARM_9)
    assert symbol.has_declaration(ARM64_21)
    assert not symbol.has_declaration(X86_9)


def test_end_to_end_conflicting_annotations():
    database = HeaderDatabase()
    database.ingest(
        ARM_9, _parse('void foo(void) __attribute__((annotate("introduced_in=9")));\n', ARM_9)
    )
    database.ingest(
        ARM64_21,
        _parse('void foo(void) __attribute__((annotate("introduced_in=21")));\n', ARM64_21),
    )

    with pytest.raises(AvailabilityConflictError):
        database["foo"].calculate_availability()


def test_tentative_definition_in_header_is_fatal():
    database = HeaderDatabase()

    with pytest.raises(TentativeDefinitionError):
        database.ingest(ARM_9, _parse("int common_value;\n", ARM_9))


def test_parse_number():
    assert parse_number("21") == 21
    assert parse_number("21L") == 21
    assert parse_number("0x15") == 21
    assert parse_number("025") == 21
    assert parse_number("FOO") is None


def test_predefined_macros():
    macros = predefined_macros(CompilationType(Arch.MIPS64, 23))

    assert macros["__ANDROID_API__"] == 23
    assert "__mips__" in macros and "__mips64" in macros and "__LP64__" in macros
    assert "__LP64__" not in predefined_macros(X86_9)
