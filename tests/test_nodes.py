from chronolint.syntax.nodes import Identifier, MemberExpression, NumberLiteral, StringLiteral


def test_member_property_name_for_dot_access() -> None:
    obj = Identifier(0, 1, "d", name="d")
    prop = Identifier(2, 10, "setHours", name="setHours")
    member = MemberExpression(0, 10, "d.setHours", object=obj, prop=prop)
    assert member.property_name == "setHours"
    assert member.children() == [obj, prop]


def test_member_property_name_for_computed_access() -> None:
    obj = Identifier(0, 1, "d", name="d")
    quoted = StringLiteral(2, 12, "'setHours'", value="setHours")
    assert MemberExpression(0, 13, "d['setHours']", object=obj, prop=quoted, computed=True).property_name == "setHours"

    index = NumberLiteral(2, 3, "0", value=0)
    assert MemberExpression(0, 4, "d[0]", object=obj, prop=index, computed=True).property_name is None
