from starknit.color import BACKGROUND, WHITE
from starknit.coords import SkyCoordinate
from starknit.engine import ProjectionResult, StarInfo
from starknit.render import render_preview, save_preview


def _result():
    return ProjectionResult(
        colours=(BACKGROUND, WHITE, (50, 50, 250), (90, 90, 250)),
        star_information=(
            StarInfo(),
            StarInfo(magnitude=1.0, colour_index=0.3, connected_stars=(("X", (-2,)),)),
            StarInfo(connected_stars=(("X", (3,)),)),
            StarInfo(connected_stars=(("X", (2,)),)),
        ),
        coordinates=(None, SkyCoordinate(0.0, 0.0), SkyCoordinate(0.0, 170.0), SkyCoordinate(0.0, -170.0)),
        horizon=-45.0,
    )


def test_preview_draws_nodes_on_background():
    img = render_preview(_result(), width=360, height=180)
    assert img.size == (360, 180)
    assert img.getpixel((180, 90)) == WHITE
    assert img.getpixel((10, 10)) == BACKGROUND


def test_save_preview(tmp_path):
    out = tmp_path / "preview.png"
    save_preview(_result(), str(out), width=200)
    assert out.exists()
