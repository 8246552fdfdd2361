from starknit.color import bv_to_rgb, constellation_colour, make_rng, milky_way_colour


def test_milky_way_levels():
    assert milky_way_colour(0) == (50, 50, 250)
    assert milky_way_colour(5) == (250, 250, 250)
    assert milky_way_colour(2) == (130, 130, 250)


def test_constellation_colours_are_seeded_and_in_range():
    first = [constellation_colour(make_rng(4)) for _ in range(2)]
    assert first[0] == first[1]
    rng = make_rng(9)
    for _ in range(20):
        r, g, b = constellation_colour(rng)
        assert 50 <= r <= 250
        assert 50 <= g <= 250
        assert 50 <= b <= 100


def test_hot_stars_are_bluer_than_cool_ones():
    hot = bv_to_rgb(-0.3)
    cool = bv_to_rgb(1.8)
    assert hot[2] > cool[2]
    assert cool[0] == 255
    assert all(0 <= c <= 255 for c in hot + cool)
