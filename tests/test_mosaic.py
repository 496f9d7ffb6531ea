"""Tests for the cap_mosaic package."""

from __future__ import annotations

import json
import math
from pathlib import Path

import numpy as np
import pytest
from PIL import Image
from typer.testing import CliRunner

from cap_mosaic.aggregate import AssignedCell, EmptyCell, build_result
from cap_mosaic.cli import app
from cap_mosaic.color_utils import (
    Color,
    color_distance,
    colors_to_array,
    contrast_color,
    pairwise_distance,
)
from cap_mosaic.config import MosaicConfig
from cap_mosaic.cost_matrix import (
    build_cost_matrix,
    region_average_color,
    sample_cell_colors,
)
from cap_mosaic.errors import Cancelled, InternalInvariantViolation, InvalidInput
from cap_mosaic.export import cap_codes, grid_to_csv, index_to_code, legend
from cap_mosaic.geometry import (
    HEX_VERTICAL_FACTOR,
    GridDimensions,
    Packing,
    cell_rects,
    compute_dimensions,
)
from cap_mosaic.image_io import extract_cap_color, load_image, shrink_size
from cap_mosaic.inventory import Tile, expand_slots, load_inventory
from cap_mosaic.mosaic import generate_assignment, generate_from_image, plan_grid
from cap_mosaic.solver_hungarian import UNASSIGNED

BLACK = Color(0, 0, 0)
WHITE = Color(255, 255, 255)
RED = Color(255, 0, 0)
GREEN = Color(0, 255, 0)
BLUE = Color(0, 0, 255)

# -- Fixtures ----------------------------------------------------------


@pytest.fixture
def four_tiles() -> list[Tile]:
    return [
        Tile("black", BLACK, 1),
        Tile("white", WHITE, 1),
        Tile("red", RED, 1),
        Tile("green", GREEN, 1),
    ]


@pytest.fixture
def split_image() -> np.ndarray:
    """20x10 image, left half red, right half blue."""
    img = np.zeros((10, 20, 3), dtype=np.uint8)
    img[:, :10] = RED.as_tuple()
    img[:, 10:] = BLUE.as_tuple()
    return img


@pytest.fixture
def inventory_file(tmp_path: Path) -> Path:
    entries = [
        {"id": "r", "name": "Red Lager", "color": "#FF0000", "quantity": 10},
        {"id": "b", "name": "Blue Ale", "color": [0, 0, 255], "quantity": 10},
    ]
    p = tmp_path / "caps.json"
    p.write_text(json.dumps(entries))
    return p


@pytest.fixture
def tmp_image(tmp_path: Path, split_image: np.ndarray) -> Path:
    p = tmp_path / "target.png"
    Image.fromarray(split_image).save(p)
    return p


# -- Config ------------------------------------------------------------

class TestConfig:
    def test_defaults(self) -> None:
        cfg = MosaicConfig()
        assert cfg.packing == "hex"
        assert cfg.solver == "hungarian"
        assert cfg.color_space == "redmean"

    def test_frozen(self) -> None:
        cfg = MosaicConfig()
        with pytest.raises(AttributeError):
            cfg.solver = "greedy"  # type: ignore[misc]


# -- Colour model ------------------------------------------------------

class TestColor:
    def test_distance_to_self_is_zero(self) -> None:
        for c in (BLACK, WHITE, RED, Color(12, 200, 77)):
            assert color_distance(c, c) == 0.0

    def test_symmetric(self) -> None:
        a, b = Color(10, 20, 30), Color(200, 150, 5)
        assert color_distance(a, b) == color_distance(b, a)

    def test_black_white(self) -> None:
        expected = math.sqrt((8 + 255 / 256) * 255 ** 2)
        assert color_distance(BLACK, WHITE) == pytest.approx(expected)

    def test_green_weighted_most(self) -> None:
        base = Color(100, 100, 100)
        assert color_distance(base, Color(100, 110, 100)) > color_distance(
            base, Color(110, 100, 100),
        )

    def test_hex_round_trip(self) -> None:
        assert Color.from_hex("#ff7f11") == Color(255, 127, 17)
        assert Color(255, 127, 17).hex == "#FF7F11"

    @pytest.mark.parametrize("bad", [(256, 0, 0), (-1, 0, 0), (1.5, 0, 0)])
    def test_rejects_bad_channels(self, bad: tuple) -> None:
        with pytest.raises(InvalidInput):
            Color(*bad)

    def test_rejects_bad_hex(self) -> None:
        with pytest.raises(InvalidInput):
            Color.from_hex("#12345")

    def test_pairwise_matches_scalar(self) -> None:
        rng = np.random.default_rng(3)
        t = rng.integers(0, 256, size=(7, 3), dtype=np.uint8)
        s = rng.integers(0, 256, size=(5, 3), dtype=np.uint8)
        table = pairwise_distance(t, s)
        assert table.shape == (7, 5)
        for i in range(7):
            for j in range(5):
                assert table[i, j] == pytest.approx(
                    color_distance(Color(*t[i]), Color(*s[j])),
                )

    def test_pairwise_lab_and_rgb(self) -> None:
        colors = colors_to_array([RED, GREEN])
        for space in ("lab", "rgb"):
            table = pairwise_distance(colors, colors, space)
            np.testing.assert_allclose(np.diag(table), 0.0, atol=1e-6)
            assert table[0, 1] > 0

    def test_unknown_color_space(self) -> None:
        with pytest.raises(InvalidInput):
            pairwise_distance(colors_to_array([RED]), colors_to_array([RED]), "hsv")

    def test_contrast_color(self) -> None:
        assert contrast_color(WHITE) == "#000000"
        assert contrast_color(BLACK) == "#FFFFFF"


# -- Grid geometry -----------------------------------------------------

class TestGeometry:
    def test_square_image(self) -> None:
        dims = compute_dimensions(100, 100, 100, Packing.SQUARE)
        assert (dims.width, dims.height, dims.total_cells) == (10, 10, 100)

    def test_landscape(self) -> None:
        dims = compute_dimensions(100, 200, 100, "square")
        assert (dims.width, dims.height) == (14, 7)

    def test_hex_stretches_rows(self) -> None:
        dims = compute_dimensions(100, 100, 100, Packing.HEX)
        assert (dims.width, dims.height, dims.total_cells) == (11, 9, 99)
        assert dims.packing is Packing.HEX

    def test_zero_slots(self) -> None:
        dims = compute_dimensions(0, 640, 480, Packing.HEX)
        assert (dims.width, dims.height, dims.total_cells) == (0, 0, 0)

    def test_very_thin_image(self) -> None:
        dims = compute_dimensions(3, 1000, 1)
        assert (dims.width, dims.height) == (3, 1)

    @pytest.mark.parametrize("packing", list(Packing))
    def test_never_exceeds_slots(self, packing: Packing) -> None:
        for total in range(1, 150):
            for w, h in ((1, 1), (16, 9), (9, 16), (300, 7), (3, 500)):
                dims = compute_dimensions(total, w, h, packing)
                assert dims.width >= 1
                assert dims.height >= 1
                assert dims.total_cells == dims.width * dims.height <= total

    @pytest.mark.parametrize("size", [(0, 10), (10, 0), (-5, 10), (float("nan"), 10)])
    def test_rejects_bad_image_size(self, size: tuple[float, float]) -> None:
        with pytest.raises(InvalidInput):
            compute_dimensions(10, *size)

    def test_rejects_negative_slots(self) -> None:
        with pytest.raises(InvalidInput):
            compute_dimensions(-1, 10, 10)

    def test_unknown_packing(self) -> None:
        with pytest.raises(InvalidInput):
            Packing.parse("triangle")

    def test_square_rects_tile_image(self) -> None:
        dims = GridDimensions(4, 2, 8, Packing.SQUARE)
        rects = cell_rects(dims, 40, 20)
        assert len(rects) == 8
        assert rects[0][2:] == (0.0, 0.0, 10.0, 10.0)
        last = rects[-1]
        assert (last.row, last.col) == (1, 3)
        assert last.x + last.width == pytest.approx(40)
        assert last.y + last.height == pytest.approx(20)

    def test_hex_rects_offset_even_rows(self) -> None:
        dims = GridDimensions(4, 3, 12, Packing.HEX)
        rects = cell_rects(dims, 45, 30)
        cell_w = 45 / 4.5
        row0 = [r for r in rects if r.row == 0]
        row1 = [r for r in rects if r.row == 1]
        assert row0[0].x == pytest.approx(cell_w / 2)
        assert row1[0].x == pytest.approx(0.0)
        assert row0[-1].x + row0[-1].width == pytest.approx(45)
        assert row1[0].y == pytest.approx(row1[0].height * HEX_VERTICAL_FACTOR)
        last = rects[-1]
        assert last.y + last.height == pytest.approx(30)


# -- Inventory ---------------------------------------------------------

class TestInventory:
    def test_expand_slots(self) -> None:
        tiles = [Tile("a", RED, 2), Tile("b", BLUE, 0), Tile("c", GREEN, 1)]
        slots = expand_slots(tiles)
        assert [s.tile_id for s in slots] == ["a", "a", "c"]
        assert [s.index for s in slots] == [0, 1, 2]
        assert [s.tile_index for s in slots] == [0, 0, 2]

    def test_duplicate_ids(self) -> None:
        with pytest.raises(InvalidInput):
            expand_slots([Tile("a", RED, 1), Tile("a", BLUE, 1)])

    @pytest.mark.parametrize("quantity", [-1, 1.5, True])
    def test_bad_quantity(self, quantity: object) -> None:
        with pytest.raises(InvalidInput):
            Tile("a", RED, quantity)  # type: ignore[arg-type]

    def test_load_inventory(self, tmp_path: Path) -> None:
        p = tmp_path / "inv.json"
        p.write_text(json.dumps({"beercaps": [
            {"id": "x", "color": "#00FF00", "quantity": 3, "imageData": "data:..."},
            {"id": "y", "color": {"r": 1, "g": 2, "b": 3}, "quantity": 0},
        ]}))
        tiles = load_inventory(p)
        assert tiles[0] == Tile("x", GREEN, 3, image="data:...")
        assert tiles[1].color == Color(1, 2, 3)

    def test_load_inventory_rejects_missing_fields(self, tmp_path: Path) -> None:
        p = tmp_path / "inv.json"
        p.write_text(json.dumps([{"id": "x", "quantity": 1}]))
        with pytest.raises(InvalidInput):
            load_inventory(p)

    def test_load_inventory_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidInput, match="Cannot read inventory"):
            load_inventory(tmp_path / "nope.json")


# -- Cost matrix -------------------------------------------------------

class TestCostMatrix:
    def test_region_average(self) -> None:
        pixels = np.zeros((2, 2, 3), dtype=np.uint8)
        pixels[0, 0] = (255, 255, 255)
        assert region_average_color(pixels, 0, 0, 2, 2) == Color(64, 64, 64)

    def test_region_outside_image_is_grey(self) -> None:
        pixels = np.zeros((2, 2, 3), dtype=np.uint8)
        assert region_average_color(pixels, 5, 5, 1, 1) == Color(128, 128, 128)

    def test_sample_quadrants(self) -> None:
        img = np.zeros((4, 4, 3), dtype=np.uint8)
        img[:2, 2:] = RED.as_tuple()
        img[2:, :2] = GREEN.as_tuple()
        img[2:, 2:] = WHITE.as_tuple()
        dims = GridDimensions(2, 2, 4, Packing.SQUARE)
        assert sample_cell_colors(img, dims) == [BLACK, RED, GREEN, WHITE]

    def test_sample_pil_image_with_alpha(self) -> None:
        img = Image.new("RGBA", (6, 6), (10, 20, 30, 255))
        dims = compute_dimensions(4, 6, 6, Packing.HEX)
        colors = sample_cell_colors(img, dims)
        assert len(colors) == dims.total_cells
        assert set(colors) == {Color(10, 20, 30)}

    def test_sample_rejects_bad_shape(self) -> None:
        with pytest.raises(InvalidInput):
            sample_cell_colors(np.zeros((4, 4, 5)), GridDimensions(1, 1, 1))

    def test_sample_rejects_float_pixels(self) -> None:
        with pytest.raises(InvalidInput, match="dtype"):
            sample_cell_colors(np.full((4, 4, 3), 0.9), GridDimensions(1, 1, 1))

    def test_sample_rejects_out_of_range_pixels(self) -> None:
        pixels = np.full((4, 4, 3), 300, dtype=np.int64)
        with pytest.raises(InvalidInput, match="0..255"):
            sample_cell_colors(pixels, GridDimensions(1, 1, 1))

    def test_sample_accepts_wide_integer_pixels(self) -> None:
        pixels = np.full((4, 4, 3), 200, dtype=np.int64)
        colors = sample_cell_colors(pixels, GridDimensions(1, 1, 1, Packing.SQUARE))
        assert colors == [Color(200, 200, 200)]

    def test_shape_and_repeated_columns(self) -> None:
        tiles = [Tile("a", RED, 2), Tile("b", BLUE, 1)]
        cost = build_cost_matrix([RED, BLUE, WHITE], tiles)
        assert cost.shape == (3, 3)
        assert cost.dtype == np.float64
        np.testing.assert_array_equal(cost[:, 0], cost[:, 1])
        assert cost[0, 0] == 0.0
        assert cost[1, 2] == 0.0
        assert cost[2, 2] == pytest.approx(color_distance(WHITE, BLUE))

    def test_no_slots(self) -> None:
        cost = build_cost_matrix([RED, BLUE], [Tile("a", RED, 0)])
        assert cost.shape == (2, 0)


# -- Aggregation -------------------------------------------------------

class TestAggregate:
    def test_usage_round_trip(self) -> None:
        tiles = [Tile("a", RED, 3), Tile("b", BLUE, 2), Tile("c", GREEN, 0)]
        slots = expand_slots(tiles)
        colors = [RED, BLUE, RED, WHITE]
        cost = build_cost_matrix(colors, tiles)
        assignment = np.array([0, 3, 1, UNASSIGNED])
        dims = GridDimensions(2, 2, 4)
        grid, stats = build_result(assignment, colors, slots, tiles, cost, dims)

        for usage in stats.per_tile:
            assert usage.used + usage.remaining == usage.original
        assert stats.usage_for("a").used == 2
        assert stats.usage_for("b").used == 1
        assert stats.total_used == 3
        assert stats.total_remaining == 2
        assert stats.empty_cells == 1
        assert isinstance(grid.cell(1, 1), EmptyCell)
        assert grid.cell(1, 1).tile_id is None
        assert grid.tile_ids() == [["a", "b"], ["a", None]]

    def test_out_of_range_slot(self) -> None:
        tiles = [Tile("a", RED, 1)]
        cost = np.zeros((1, 1))
        with pytest.raises(InternalInvariantViolation):
            build_result(
                np.array([4]), [RED], expand_slots(tiles), tiles, cost,
                GridDimensions(1, 1, 1),
            )

    def test_shape_mismatch(self) -> None:
        with pytest.raises(InternalInvariantViolation):
            build_result(
                np.array([UNASSIGNED]), [RED, RED], [], [], np.zeros((2, 0)),
                GridDimensions(2, 1, 2),
            )

    def test_overused_tile(self, caplog: pytest.LogCaptureFixture) -> None:
        tiles = [Tile("a", RED, 1)]
        slots = expand_slots([Tile("a", RED, 2)])
        with pytest.raises(InternalInvariantViolation, match="only 1 exist"):
            build_result(
                np.array([0, 1]), [RED, RED], slots, tiles, np.zeros((2, 2)),
                GridDimensions(2, 1, 2),
            )
        assert "2x1 grid" in caplog.text


# -- Pipeline ----------------------------------------------------------

class TestGenerateAssignment:
    def test_exact_palette_is_identity(self, four_tiles: list[Tile]) -> None:
        result = generate_assignment([BLACK, WHITE, RED, GREEN], four_tiles)
        np.testing.assert_array_equal(result.assignment, [0, 1, 2, 3])
        assert result.stats.total_cost == 0.0
        assert result.stats.mean_cost == 0.0

    def test_shuffled_targets(self, four_tiles: list[Tile]) -> None:
        dims = GridDimensions(2, 2, 4)
        result = generate_assignment([GREEN, RED, WHITE, BLACK], four_tiles, dims)
        assert result.grid.tile_ids() == [["green", "red"], ["white", "black"]]
        assert result.stats.total_cost == 0.0

    def test_one_tile_two_cells(self) -> None:
        tiles = [Tile("grey", Color(5, 5, 5), 2)]
        result = generate_assignment([(0, 0, 0), (10, 10, 10)], tiles)
        assert all(isinstance(c, AssignedCell) for c in result.grid)
        assert {c.tile_id for c in result.grid} == {"grey"}
        usage = result.stats.usage_for("grey")
        assert (usage.original, usage.used, usage.remaining) == (2, 2, 0)

    def test_zero_slots_gives_empty_grid(self) -> None:
        tiles = [Tile("a", RED, 0)]
        dims = GridDimensions(2, 1, 2)
        result = generate_assignment([RED, BLUE], tiles, dims)
        assert result.grid.is_empty()
        assert all(c.assigned_color == Color(200, 200, 200) for c in result.grid)
        assert result.stats.total_used == 0
        assert result.stats.mean_cost == 0.0

    def test_zero_slots_zero_cells(self) -> None:
        dims = plan_grid(0, 640, 480)
        result = generate_assignment([], [], dims)
        assert len(result.grid) == 0
        assert result.grid.is_empty()
        assert result.stats.mean_cost == 0.0

    def test_slot_shortfall(self) -> None:
        tiles = [Tile("r", RED, 1), Tile("b", BLUE, 1)]
        result = generate_assignment([RED, BLUE, WHITE], tiles)
        assert result.stats.empty_cells == 1
        assert result.stats.total_remaining == 0

    def test_surplus_slots(self) -> None:
        tiles = [Tile("r", RED, 5), Tile("b", BLUE, 5)]
        result = generate_assignment([BLUE, RED], tiles)
        assert result.grid.tile_ids() == [["b", "r"]]
        assert result.stats.total_remaining == 8

    def test_global_beats_greedy(self) -> None:
        tiles = [Tile("dark", Color(20, 20, 20), 1), Tile("mid", Color(120, 120, 120), 1)]
        targets = [Color(60, 60, 60), Color(0, 0, 0)]
        optimal = generate_assignment(targets, tiles)
        greedy = generate_assignment(
            targets, tiles, config=MosaicConfig(solver="greedy"),
        )
        assert optimal.stats.total_cost < greedy.stats.total_cost

    def test_scipy_backend_same_cost(self, four_tiles: list[Tile]) -> None:
        result = generate_assignment(
            [RED, GREEN, BLACK, WHITE], four_tiles, config=MosaicConfig(solver="scipy"),
        )
        assert result.stats.total_cost == 0.0

    def test_progress_stages(self, four_tiles: list[Tile]) -> None:
        events: list[tuple[str, int]] = []
        generate_assignment(
            [BLACK, WHITE, RED, GREEN], four_tiles,
            progress=lambda stage, pct: events.append((stage, pct)),
        )
        assert events[0] == ("Building cost matrix", 0)
        assert events[-1] == ("Done", 100)
        assert "Solving" in {stage for stage, _ in events}
        percents = [pct for _, pct in events]
        assert percents == sorted(percents)

    def test_colour_count_must_match_grid(self, four_tiles: list[Tile]) -> None:
        with pytest.raises(InvalidInput):
            generate_assignment([RED, BLUE], four_tiles, GridDimensions(2, 2, 4))

    def test_from_image(self, split_image: np.ndarray) -> None:
        tiles = [Tile("r", RED, 10), Tile("b", BLUE, 10)]
        result = generate_from_image(
            split_image, tiles, config=MosaicConfig(packing="square"),
        )
        assert (result.dimensions.width, result.dimensions.height) == (6, 3)
        for cell in result.grid:
            expected = "r" if cell.col < 3 else "b"
            assert cell.tile_id == expected
        assert result.stats.total_cost == 0.0
        assert result.stats.total_remaining == 2


# -- Export ------------------------------------------------------------

class TestExport:
    @pytest.mark.parametrize(("index", "code"), [
        (0, "A"), (25, "Z"), (26, "AA"), (27, "AB"), (701, "ZZ"), (702, "AAA"),
    ])
    def test_codes(self, index: int, code: str) -> None:
        assert index_to_code(index) == code

    def test_csv_marks_empty_cells(self) -> None:
        tiles = [Tile("r", RED, 1)]
        result = generate_assignment([RED, BLUE], tiles, GridDimensions(1, 2, 2))
        codes = cap_codes(tiles)
        assert grid_to_csv(result.grid, codes) == "A\n-\n"

    def test_legend(self, four_tiles: list[Tile]) -> None:
        entries = legend(four_tiles, cap_codes(four_tiles))
        assert [e.code for e in entries] == ["A", "B", "C", "D"]
        assert entries[1].hex == "#FFFFFF"
        assert entries[1].text_color == "#000000"


# -- Image I/O ---------------------------------------------------------

class TestImageIO:
    def test_load_shrinks_longest_side(self, tmp_image: Path) -> None:
        arr = load_image(tmp_image, max_side=10)
        assert arr.shape == (5, 10, 3)

    def test_load_keeps_small_image(self, tmp_image: Path) -> None:
        assert load_image(tmp_image, max_side=64).shape == (10, 20, 3)

    @pytest.mark.parametrize(("size", "expected"), [
        ((400, 100), (40, 10)), ((100, 400), (10, 40)), ((1000, 3), (40, 1)),
    ])
    def test_shrink_size(
        self, size: tuple[int, int], expected: tuple[int, int],
    ) -> None:
        assert shrink_size(*size, 40) == expected

    def test_load_rejects_zero_max_side(self, tmp_image: Path) -> None:
        with pytest.raises(InvalidInput):
            load_image(tmp_image, max_side=0)

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidInput):
            load_image(tmp_path / "nope.png")

    def test_cap_color_solid(self) -> None:
        img = Image.new("RGB", (40, 40), (30, 60, 90))
        assert extract_cap_color(img) == Color(30, 60, 90)

    def test_cap_color_centre_weighted(self) -> None:
        img = Image.new("RGB", (50, 50), (0, 0, 0))
        img.paste((255, 255, 255), (15, 15, 35, 35))
        color = extract_cap_color(img)
        # white covers 16% of the area but gets more than 16% of the weight
        assert color.r > 0.16 * 255

    def test_cap_color_transparent(self) -> None:
        img = Image.new("RGBA", (20, 20), (255, 0, 0, 0))
        assert extract_cap_color(img) == Color(128, 128, 128)


# -- CLI ---------------------------------------------------------------

class TestCLI:
    runner = CliRunner()

    def test_plan(self, inventory_file: Path, tmp_image: Path) -> None:
        res = self.runner.invoke(
            app, ["plan", str(inventory_file), str(tmp_image), "--packing", "square"],
        )
        assert res.exit_code == 0, res.output
        assert "6 x 3" in res.output

    def test_generate_writes_csv(
        self, inventory_file: Path, tmp_image: Path, tmp_path: Path,
    ) -> None:
        out = tmp_path / "out"
        res = self.runner.invoke(app, [
            "generate", str(inventory_file), str(tmp_image),
            "--packing", "square", "--output", str(out),
        ])
        assert res.exit_code == 0, res.output
        rows = (out / "target_grid.csv").read_text().splitlines()
        assert rows == ["A,A,A,B,B,B"] * 3
        assert (out / "target_legend.csv").exists()

    def test_generate_bad_solver(self, inventory_file: Path, tmp_image: Path) -> None:
        res = self.runner.invoke(app, [
            "generate", str(inventory_file), str(tmp_image), "--solver", "magic",
        ])
        assert res.exit_code == 2

    def test_scan(self, tmp_path: Path) -> None:
        Image.new("RGB", (30, 30), (0, 128, 255)).save(tmp_path / "blue_cap.png")
        res = self.runner.invoke(app, ["scan", str(tmp_path)])
        assert res.exit_code == 0, res.output
        assert json.loads(res.output)[0]["color"] == "#0080FF"

    def test_plan_missing_inventory(self, tmp_image: Path, tmp_path: Path) -> None:
        res = self.runner.invoke(app, ["plan", str(tmp_path / "nope.json"), str(tmp_image)])
        assert res.exit_code == 2
        assert "Cannot read inventory" in res.output

    def test_generate_undecodable_inventory(self, tmp_image: Path, tmp_path: Path) -> None:
        bad = tmp_path / "caps.json"
        bad.write_bytes(b"\xff\xfe\x00[")
        res = self.runner.invoke(app, ["generate", str(bad), str(tmp_image)])
        assert res.exit_code == 2

    def test_generate_cancelled(
        self,
        inventory_file: Path,
        tmp_image: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def cancelled(*args: object, **kwargs: object) -> None:
            msg = "Solve cancelled"
            raise Cancelled(msg)

        monkeypatch.setattr("cap_mosaic.cli.generate_from_image", cancelled)
        res = self.runner.invoke(app, [
            "generate", str(inventory_file), str(tmp_image),
            "--output", str(tmp_path / "out"),
        ])
        assert res.exit_code == 130
        assert not (tmp_path / "out").exists()
