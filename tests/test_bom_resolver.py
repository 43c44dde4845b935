"""BOM tree resolution: structure, quantities, truncation and cycles."""

from __future__ import annotations

import time

import pytest

from app.services.bom_service import (
    CYCLE_DESCRIPTION,
    MAX_DEPTH_DESCRIPTION,
    BomResolver,
    CircularBomError,
    InvalidAssemblyIPNError,
    resolve_bom,
)


def _count_nodes(node) -> int:
    return 1 + sum(_count_nodes(c) for c in node.children)


def _max_depth(node, depth: int = 0) -> int:
    return max([depth, *(_max_depth(c, depth + 1) for c in node.children)])


class TestResolveBasics:
    def test_example_tree(self, parts_dir, example_bom):
        tree = resolve_bom(parts_dir, "ASY-ROOT")

        assert tree.ipn == "ASY-ROOT"
        assert tree.description == "Top-level assembly"
        assert tree.qty is None
        assert [c.ipn for c in tree.children] == ["PCA-A", "RES-001"]

        pca = tree.children[0]
        assert pca.qty == 1.0
        assert pca.ref == "A1"
        assert pca.description == "Amplifier board"
        assert [(c.ipn, c.qty, c.ref) for c in pca.children] == [("RES-001", 2.0, "R1,R2")]

        res = tree.children[1]
        assert res.children == []
        assert res.truncated is None

    def test_non_assembly_rejected_before_recursion(self, parts_dir, bom_file):
        bom_file("RES-001", [["RES-002", "1", "", ""]])
        with pytest.raises(InvalidAssemblyIPNError):
            resolve_bom(parts_dir, "RES-001")

    def test_lowercase_prefix_is_an_assembly(self, parts_dir, bom_file):
        bom_file("pca-small", [["RES-1", "3", "", ""]])
        tree = resolve_bom(parts_dir, "pca-small")
        assert [c.ipn for c in tree.children] == ["RES-1"]

    def test_missing_composition_gives_childless_node(self, parts_dir):
        tree = resolve_bom(parts_dir, "PCA-UNDOCUMENTED")
        assert tree.ipn == "PCA-UNDOCUMENTED"
        assert tree.description == ""
        assert tree.children == []
        assert tree.truncated is None

    def test_missing_sub_assembly_is_a_childless_child(self, parts_dir, bom_file):
        bom_file("ASY-1", [["PCA-GONE", "2", "A1", "Lost board"]])
        tree = resolve_bom(parts_dir, "ASY-1")
        child = tree.children[0]
        assert child.ipn == "PCA-GONE"
        assert child.description == "Lost board"
        assert child.qty == 2.0
        assert child.children == []

    def test_row_ipn_cannot_reach_outside_parts_dir(self, tmp_path, parts_dir, bom_file):
        (parts_dir / "PCA-1").mkdir()
        (tmp_path / "secret.csv").write_text("IPN,qty\nRES-SECRET,1\n", encoding="utf-8")
        bom_file("ASY-1", [["PCA-1/../../secret", "1", "", ""]])

        child = resolve_bom(parts_dir, "ASY-1").children[0]
        assert child.ipn == "PCA-1/../../secret"
        assert child.children == []

    def test_sub_assembly_in_category_subdirectory(self, parts_dir, bom_file):
        bom_file("ASY-1", [["PCA-2", "1", "", ""]])
        bom_file("PCA-2", [["RES-9", "4", "R9", ""]], subdir="boards")
        tree = resolve_bom(parts_dir, "ASY-1")
        assert tree.children[0].children[0].ipn == "RES-9"


class TestDescriptions:
    def test_sub_assembly_own_description_wins_over_row(self, parts_dir, bom_file, components):
        components(("PCA-A", "Catalog description"))
        bom_file("ASY-1", [["PCA-A", "1", "", "Row description"]])
        tree = resolve_bom(parts_dir, "ASY-1")
        assert tree.children[0].description == "Catalog description"

    def test_sub_assembly_falls_back_to_row_description(self, parts_dir, bom_file):
        bom_file("ASY-1", [["PCA-B", "1", "", "Row description"]])
        tree = resolve_bom(parts_dir, "ASY-1")
        assert tree.children[0].description == "Row description"

    def test_leaf_row_description_wins_over_catalog(self, parts_dir, bom_file, components):
        components(("RES-1", "Catalog resistor"))
        bom_file("ASY-1", [["RES-1", "1", "", "Row resistor"]])
        assert resolve_bom(parts_dir, "ASY-1").children[0].description == "Row resistor"

    def test_leaf_falls_back_to_catalog(self, parts_dir, bom_file, components):
        components(("RES-1", "Catalog resistor"))
        bom_file("ASY-1", [["RES-1", "1", "", ""], ["RES-UNKNOWN", "1", "", ""]])
        children = resolve_bom(parts_dir, "ASY-1").children
        assert children[0].description == "Catalog resistor"
        assert children[1].description == ""


class TestQuantities:
    def test_quantities_are_not_cumulative(self, parts_dir, bom_file):
        bom_file("ASY-TOP", [["PCA-MID", "3", "", ""]])
        bom_file("PCA-MID", [["PCA-LOW", "4", "", ""], ["RES-1", "2", "", ""]])
        bom_file("PCA-LOW", [["CAP-1", "5", "", ""]])

        tree = resolve_bom(parts_dir, "ASY-TOP")
        mid = tree.children[0]
        low = mid.children[0]
        cap = low.children[0]

        assert mid.qty == 3.0
        assert low.qty == 4.0
        assert cap.qty == 5.0
        assert mid.children[1].qty == 2.0

    def test_malformed_quantity_defaults_to_one(self, parts_dir, bom_file):
        bom_file("ASY-1", [["RES-1", "two", "", ""], ["PCA-2", "-1", "", ""]])
        tree = resolve_bom(parts_dir, "ASY-1")
        assert [c.qty for c in tree.children] == [1.0, 1.0]


class TestDepthGuard:
    def test_direct_self_reference_terminates_with_placeholder(self, parts_dir, bom_file):
        bom_file("PCA-X", [["PCA-X", "1", "A1", "Self"]])

        tree = resolve_bom(parts_dir, "PCA-X", max_depth=5)

        node = tree
        for _ in range(5):
            node = node.children[0]
            assert node.truncated is None
        placeholder = node.children[0]
        assert placeholder.ipn == "PCA-X"
        assert placeholder.truncated == "max_depth"
        assert placeholder.description == MAX_DEPTH_DESCRIPTION
        assert placeholder.children == []
        assert _max_depth(tree) == 6

    def test_deep_chain_truncates_at_max_depth_plus_one(self, parts_dir, bom_file):
        for i in range(10):
            bom_file(f"PCA-L{i}", [[f"PCA-L{i + 1}", "1", "", ""], [f"RES-{i}", "1", "", ""]])

        tree = resolve_bom(parts_dir, "PCA-L0", max_depth=3)

        node = tree
        for level in range(1, 4):
            node = node.children[0]
            assert node.ipn == f"PCA-L{level}"
            assert node.truncated is None
        placeholder = node.children[0]
        assert placeholder.ipn == "PCA-L4"
        assert placeholder.truncated == "max_depth"
        assert placeholder.children == []
        # leaves of the last expanded level are still present
        assert node.children[1].ipn == "RES-3"

    def test_max_depth_zero_expands_only_the_root(self, parts_dir, example_bom):
        tree = resolve_bom(parts_dir, "ASY-ROOT", max_depth=0)
        pca, res = tree.children
        assert pca.truncated == "max_depth"
        assert pca.qty == 1.0
        assert res.ipn == "RES-001"

    def test_negative_max_depth_rejected(self, parts_dir):
        with pytest.raises(ValueError):
            BomResolver(parts_dir, max_depth=-1)

    def test_mutual_reference_terminates(self, parts_dir, bom_file):
        bom_file("PCA-M1", [["PCA-M2", "1", "", ""], ["RES-1", "1", "", ""]])
        bom_file("PCA-M2", [["PCA-M1", "1", "", ""], ["RES-1", "1", "", ""]])

        tree = resolve_bom(parts_dir, "PCA-M1")
        assert _max_depth(tree) == 6
        # one assembly + one leaf per expanded level, plus the placeholder
        assert _count_nodes(tree) == 6 * 2 + 1

    def test_fan_out_cycle_is_bounded_and_fast(self, parts_dir, bom_file):
        bom_file("PCA-F", [["PCA-F", "1", "", ""]] * 3 + [["RES-1", "1", "", ""]])

        start = time.monotonic()
        tree = resolve_bom(parts_dir, "PCA-F", max_depth=5)
        elapsed = time.monotonic() - start

        assert elapsed < 5.0
        # 3-way branching for 6 expanded levels, 3^6 placeholders at depth 6
        assert _max_depth(tree) == 6
        assert _count_nodes(tree) == sum(3**d for d in range(7)) + sum(3**d for d in range(6))


class TestCyclePolicies:
    @pytest.fixture
    def mutual(self, bom_file):
        bom_file("PCA-M1", [["PCA-M2", "1", "", ""], ["RES-1", "1", "", ""]])
        bom_file("PCA-M2", [["PCA-M1", "1", "A7", ""], ["RES-1", "1", "", ""]])

    def test_mark_stops_at_first_revisit(self, parts_dir, mutual):
        tree = resolve_bom(parts_dir, "PCA-M1", cycle_policy="mark")
        m2 = tree.children[0]
        back_edge = m2.children[0]
        assert back_edge.ipn == "PCA-M1"
        assert back_edge.truncated == "cycle"
        assert back_edge.description == CYCLE_DESCRIPTION
        assert back_edge.ref == "A7"
        assert back_edge.children == []
        assert _max_depth(tree) == 2

    def test_mark_self_reference(self, parts_dir, bom_file):
        bom_file("PCA-X", [["PCA-X", "1", "", ""]])
        tree = resolve_bom(parts_dir, "PCA-X", cycle_policy="mark")
        assert tree.children[0].truncated == "cycle"

    def test_reject_raises_with_path(self, parts_dir, mutual):
        with pytest.raises(CircularBomError) as exc_info:
            resolve_bom(parts_dir, "PCA-M1", cycle_policy="reject")
        assert exc_info.value.path == ("PCA-M1", "PCA-M2", "PCA-M1")
        assert "PCA-M1 -> PCA-M2 -> PCA-M1" in str(exc_info.value)

    def test_shared_sub_assembly_is_not_a_cycle(self, parts_dir, bom_file):
        bom_file("ASY-D", [["PCA-A", "1", "", ""], ["PCA-B", "1", "", ""]])
        bom_file("PCA-B", [["PCA-A", "2", "", ""]])
        bom_file("PCA-A", [["RES-1", "1", "", ""]])

        tree = resolve_bom(parts_dir, "ASY-D", cycle_policy="reject")
        assert tree.children[1].children[0].children[0].ipn == "RES-1"

    def test_unknown_policy_rejected(self, parts_dir):
        with pytest.raises(ValueError):
            BomResolver(parts_dir, cycle_policy="explode")
