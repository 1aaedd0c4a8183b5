import pytest

from oficina.client.car_parts import detect_car_part, part_label


@pytest.mark.parametrize(
    "position, normal, expected",
    [
        ((-0.2, 0.1, 0.2), (-1.0, 0.0, 0.0), "roda_dianteira_esq"),
        ((0.2, 0.1, -0.2), (1.0, 0.0, 0.0), "roda_traseira_dir"),
        ((0.0, 0.4, 0.0), (0.0, 1.0, 0.0), "teto"),
        ((0.0, 0.2, 0.3), (0.0, 1.0, 0.0), "capo"),
        ((0.0, 0.1, 0.2), (0.0, 0.5, 0.5), "para_brisa"),
        ((0.0, 0.1, -0.2), (0.0, 0.5, -0.5), "vidro_traseiro"),
        ((0.0, 0.2, 0.4), (0.0, 0.0, 1.0), "para_choque_dianteiro"),
        ((0.0, 0.2, -0.3), (0.0, 0.0, -1.0), "traseira"),
        ((-0.3, 0.2, 0.05), (-1.0, 0.0, 0.0), "porta_dianteira_esq"),
        ((0.3, 0.2, -0.15), (1.0, 0.0, 0.0), "paralama_traseiro_dir"),
        ((-0.2, 0.2, 0.0), (0.0, 0.0, 0.0), "lateral_esquerda"),
        ((0.0, 0.2, 0.0), (0.0, 0.0, 0.0), "indefinido"),
    ],
)
def test_detect_car_part(position, normal, expected):
    assert detect_car_part(position, normal) == expected


def test_part_label():
    assert part_label("capo") == "Capô"
    assert part_label("nao_existe") == "Indefinido"
