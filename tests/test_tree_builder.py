import pytest

from facturx_schema_docs.compiler import (
    ComplexTypeDef,
    ElementDecl,
    GroupDefinition,
    GroupRef,
    Particle,
    SimpleTypeDef,
)
from facturx_schema_docs.namespaces import NamespacePrefixes
from facturx_schema_docs.tree_builder import TreeBuilder, format_cardinality

RAM = "urn:test:ram"
UDT = "urn:test:udt"

PREFIXES = NamespacePrefixes({RAM: "ram", UDT: "udt"})


def ram(local):
    return f"{{{RAM}}}{local}"


def udt(local):
    return f"{{{UDT}}}{local}"


def element(local, type_name="", **kwargs):
    return ElementDecl(name=ram(local), type_name=type_name, **kwargs)


def sequence(*items):
    return Particle(kind="sequence", items=list(items))


def _names(node):
    return [child.name for child in node.children]


def _builder(types, groups=None):
    return TreeBuilder(PREFIXES, types, groups or {})


TEXT = SimpleTypeDef(name=udt("TextType"))


def test_self_recursive_type_is_truncated_one_level_down():
    types = {
        ram("NoteType"): ComplexTypeDef(
            name=ram("NoteType"),
            particle=sequence(
                element("Content", udt("TextType")),
                element("Note", ram("NoteType"), min_occurs=0),
            ),
        ),
        udt("TextType"): TEXT,
    }

    root = _builder(types).build_node(element("Note", ram("NoteType")))

    assert root.name == "ram:Note"
    assert root.type_name == "ram:NoteType"
    assert _names(root) == ["ram:Content", "ram:Note"]
    nested = root.children[1]
    assert nested.type_name == "ram:NoteType"
    assert nested.cardinality == "0..1"
    assert nested.children == []


def test_mutual_recursion_truncates_at_first_repeat():
    types = {
        ram("AType"): ComplexTypeDef(name=ram("AType"), particle=sequence(element("B", ram("BType")))),
        ram("BType"): ComplexTypeDef(name=ram("BType"), particle=sequence(element("A", ram("AType")))),
    }

    root = _builder(types).build_node(element("A", ram("AType")))

    b = root.children[0]
    a_again = b.children[0]
    assert (root.name, b.name, a_again.name) == ("ram:A", "ram:B", "ram:A")
    assert a_again.children == []


def test_siblings_of_same_type_are_both_expanded():
    party = ComplexTypeDef(
        name=ram("PartyType"),
        particle=sequence(element("Name", udt("TextType")), element("ID", udt("TextType"))),
    )
    types = {
        ram("PartyType"): party,
        ram("AgreementType"): ComplexTypeDef(
            name=ram("AgreementType"),
            particle=sequence(element("Seller", ram("PartyType")), element("Buyer", ram("PartyType"))),
        ),
        udt("TextType"): TEXT,
    }

    root = _builder(types).build_node(element("Agreement", ram("AgreementType")))

    seller, buyer = root.children
    assert _names(seller) == ["ram:Name", "ram:ID"]
    assert _names(buyer) == ["ram:Name", "ram:ID"]


def test_choice_alternatives_are_independent():
    types = {
        ram("PartyType"): ComplexTypeDef(
            name=ram("PartyType"), particle=sequence(element("Name", udt("TextType")))
        ),
        ram("ChoiceType"): ComplexTypeDef(
            name=ram("ChoiceType"),
            particle=Particle(
                kind="choice",
                items=[element("First", ram("PartyType")), element("Second", ram("PartyType"))],
            ),
        ),
        udt("TextType"): TEXT,
    }

    root = _builder(types).build_node(element("Holder", ram("ChoiceType")))

    assert _names(root) == ["ram:First", "ram:Second"]
    assert all(_names(child) == ["ram:Name"] for child in root.children)


def test_separate_roots_do_not_share_cycle_state():
    types = {
        ram("NoteType"): ComplexTypeDef(
            name=ram("NoteType"), particle=sequence(element("Content", udt("TextType")))
        ),
        udt("TextType"): TEXT,
    }

    roots = _builder(types).build([element("First", ram("NoteType")), element("Second", ram("NoteType"))])

    assert [_names(root) for root in roots] == [["ram:Content"], ["ram:Content"]]


def test_group_reference_is_inlined_in_place():
    groups = {
        ram("ContactGroup"): GroupDefinition(
            name=ram("ContactGroup"),
            particle=sequence(element("Phone", udt("TextType")), element("Email", udt("TextType"))),
        ),
        ram("EmptyGroup"): GroupDefinition(name=ram("EmptyGroup"), particle=sequence()),
    }
    types = {
        ram("PartyType"): ComplexTypeDef(
            name=ram("PartyType"),
            particle=sequence(
                element("Name", udt("TextType")),
                GroupRef(ram("ContactGroup")),
                GroupRef(ram("EmptyGroup")),
                GroupRef(ram("UnknownGroup")),
                element("Agent", udt("TextType")),
            ),
        ),
        udt("TextType"): TEXT,
    }

    root = _builder(types, groups).build_node(element("Party", ram("PartyType")))

    assert _names(root) == ["ram:Name", "ram:Phone", "ram:Email", "ram:Agent"]


def test_self_referencing_group_terminates():
    groups = {
        ram("Loop"): GroupDefinition(
            name=ram("Loop"), particle=sequence(element("Item", udt("TextType")), GroupRef(ram("Loop")))
        )
    }
    types = {
        ram("LoopType"): ComplexTypeDef(name=ram("LoopType"), particle=GroupRef(ram("Loop"))),
        udt("TextType"): TEXT,
    }

    root = _builder(types, groups).build_node(element("Holder", ram("LoopType")))

    assert _names(root) == ["ram:Item"]


def test_nested_compositors_are_flattened_in_order():
    types = {
        ram("OuterType"): ComplexTypeDef(
            name=ram("OuterType"),
            particle=sequence(
                element("A", udt("TextType")),
                Particle(kind="choice", items=[element("B", udt("TextType")), element("C", udt("TextType"))]),
                element("D", udt("TextType")),
            ),
        ),
        udt("TextType"): TEXT,
    }

    root = _builder(types).build_node(element("Outer", ram("OuterType")))

    assert _names(root) == ["ram:A", "ram:B", "ram:C", "ram:D"]


def test_anonymous_recursive_type_is_truncated():
    anonymous = ComplexTypeDef()
    anonymous.particle = sequence(
        element("FileName", udt("TextType")),
        ElementDecl(ref_name=ram("Attachment"), inline_type=anonymous, min_occurs=0, max_occurs=None),
    )

    root = _builder({udt("TextType"): TEXT}).build_node(
        ElementDecl(name=ram("Attachment"), inline_type=anonymous)
    )

    assert root.type_name == ""
    assert _names(root) == ["ram:FileName", "ram:Attachment"]
    assert root.children[1].cardinality == "0..*"
    assert root.children[1].children == []


def test_unknown_and_simple_types_are_leaves():
    types = {udt("TextType"): TEXT}
    builder = _builder(types)

    simple = builder.build_node(element("Text", udt("TextType")))
    unknown = builder.build_node(element("Mystery", ram("MissingType")))
    untyped = builder.build_node(element("Anything"))

    assert simple.children == [] and simple.type_name == "udt:TextType"
    assert unknown.children == [] and unknown.type_name == "ram:MissingType"
    assert untyped.children == [] and untyped.type_name == ""


def test_deep_chain_keeps_full_depth():
    depth = 2000
    types = {}
    for level in range(depth):
        child = [element(f"L{level + 1}", ram(f"T{level + 1}"))] if level + 1 < depth else []
        types[ram(f"T{level}")] = ComplexTypeDef(name=ram(f"T{level}"), particle=sequence(*child))

    root = _builder(types).build_node(element("L0", ram("T0")))

    node, levels = root, 1
    while node.children:
        node = node.children[0]
        levels += 1
    assert levels == depth
    assert node.name == f"ram:L{depth - 1}"


@pytest.mark.parametrize(
    "min_occurs, max_occurs, expected",
    [
        (1, 1, "1..1"),
        (0, 1, "0..1"),
        (0, None, "0..*"),
        ("1", "unbounded", "1..*"),
        (2, 5, "2..5"),
        ("x", 1, ""),
        (None, 1, ""),
    ],
)
def test_format_cardinality(min_occurs, max_occurs, expected):
    assert format_cardinality(min_occurs, max_occurs) == expected
