import pytest

from chronolint.syntax.nodes import Identifier, walk
from chronolint.syntax.types import Known, TypeKind, Unknown, classify_annotation, name_tokens


def _analyze(source: str):
    pytest.importorskip("tree_sitter_language_pack")
    from chronolint.syntax.parser import parse_source
    from chronolint.syntax.scope import ScopeManager
    from chronolint.syntax.types import HeuristicTypeOracle, SafeTypeOracle

    program = parse_source(source, "typescript")
    scopes = ScopeManager(program)
    return program, scopes, SafeTypeOracle(HeuristicTypeOracle(scopes))


def _identifiers(program, name: str) -> list[Identifier]:
    return [node for node in walk(program) if isinstance(node, Identifier) and node.name == name]


def test_name_tokens_split_camel_and_snake_case() -> None:
    assert name_tokens("startDate") == ["start", "date"]
    assert name_tokens("UPDATE_AT") == ["update", "at"]
    assert name_tokens("created_date2") == ["created", "date"]


def test_classify_annotation() -> None:
    assert classify_annotation("Date") == Known(TypeKind.DATE)
    assert classify_annotation("Date | null") == Known(TypeKind.DATE)
    assert classify_annotation("any") == Known(TypeKind.ANY)
    assert classify_annotation("number") == Known(TypeKind.NUMERIC)
    assert isinstance(classify_annotation(None), Unknown)


def test_references_resolve_to_declaring_binding() -> None:
    program, scopes, _ = _analyze("const d = new Date();\nd.getTime();\nconsole.log(d);\n")
    declared, *uses = _identifiers(program, "d")
    binding = scopes.resolve(declared)
    assert binding is not None
    assert binding.kind == "const"
    assert all(scopes.resolve(use) is binding for use in uses)
    assert len(scopes.references(binding)) == 2


def test_inner_declaration_shadows_outer() -> None:
    program, scopes, _ = _analyze(
        "const d = new Date();\nfunction f(d: number) {\n  return d;\n}\nd;\n"
    )
    outer, param, inner_use, outer_use = _identifiers(program, "d")
    assert scopes.resolve(inner_use) is scopes.resolve(param)
    assert scopes.resolve(outer_use) is scopes.resolve(outer)
    assert scopes.resolve(param).kind == "param"


def test_local_date_class_shadows_global() -> None:
    program, scopes, _ = _analyze("class Date {}\nconst x = new Date();\n")
    use = _identifiers(program, "Date")[-1]
    assert scopes.is_shadowed("Date", use)
    assert scopes.resolve(use).kind == "class"


def test_aliases_are_direct_initializations() -> None:
    program, scopes, _ = _analyze("const d = new Date();\nconst a = d;\nconst b = a;\nconst c = d.getTime();\n")
    binding = scopes.resolve(_identifiers(program, "d")[0])
    assert [alias.name for alias in scopes.aliases(binding)] == ["a"]


def test_import_bindings_record_module_and_imported_name() -> None:
    program, scopes, _ = _analyze("import { set as assign } from 'date-fns';\nassign(d, {});\n")
    use = _identifiers(program, "assign")[-1]
    binding = scopes.resolve(use)
    assert binding.kind == "import"
    assert binding.import_source == "date-fns"
    assert binding.imported_name == "set"


def test_oracle_classifies_constructor_annotation_and_name() -> None:
    program, scopes, oracle = _analyze(
        "const d = new Date();\n"
        "function f(value: any, startDate, other) {\n"
        "  return [d, value, startDate, other, Date.now()];\n"
        "}\n"
    )
    uses = {
        node.name: node
        for node in walk(program)
        if isinstance(node, Identifier) and node.start > program.source.index("return")
    }
    assert oracle.is_date(uses["d"])
    assert oracle.classify(uses["value"]) == Known(TypeKind.ANY)
    assert oracle.is_known_non_date(uses["value"])
    assert oracle.is_date(uses["startDate"])
    assert isinstance(oracle.classify(uses["other"]), Unknown)


def test_oracle_treats_date_fns_results_as_dates() -> None:
    program, scopes, oracle = _analyze(
        "import { addDays } from 'date-fns';\nconst later = addDays(new Date(), 1);\nlater;\n"
    )
    use = _identifiers(program, "later")[-1]
    assert oracle.is_date(use)


def test_primary_oracle_failure_falls_back() -> None:
    program, scopes, oracle = _analyze("const d = new Date();\nd;\n")

    class Broken:
        def classify(self, node):
            raise RuntimeError("no type information")

    from chronolint.syntax.types import HeuristicTypeOracle, SafeTypeOracle

    guarded = SafeTypeOracle(HeuristicTypeOracle(scopes), primary=Broken())
    assert guarded.is_date(_identifiers(program, "d")[-1])
