from __future__ import annotations

from io import BytesIO
from typing import Callable, Sequence

import pytest
from openpyxl import Workbook

from src.queue_finder.models.domain import Appointment

HEADER = [
    "Rok",
    "Miesiąc",
    "Kod świadczenia",
    "Nazwa świadczenia",
    "Nazwa świadczeniodawcy",
    "Nazwa komórki realizującej",
    "Adres komórki",
    "Liczba oczekujących",
    "Pierwszy wolny termin",
    "Średni czas oczekiwania",
    "Kategoria medyczna",
]


def build_xlsx(rows: Sequence[Sequence[object]]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(list(row))
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def xlsx_factory() -> Callable[[Sequence[Sequence[object]]], bytes]:
    return build_xlsx


@pytest.fixture
def region_workbook() -> bytes:
    return build_xlsx(
        [
            HEADER,
            [2025, 3, "02.1010.001.02", "PORADNIA KARDIOLOGICZNA", "SZPITAL BRÓDNOWSKI", "Poradnia kardiologiczna",
             "Warszawa;ul. Kondratowicza 8;+48223265200", 120, "2025-04-02", 45, "przypadek stabilny"],
            [2025, 3, "02.1010.001.02", "PORADNIA KARDIOLOGICZNA", "CENTRUM MEDYCZNE &amp; SPÓŁKA", None,
             "Otwock;ul. Batorego 44", 7, "2025-03-28", 12, "przypadek stabilny"],
            [2025, 3, "02.1050.001.02", "PORADNIA OKULISTYCZNA", "PRZYCHODNIA OKO", "Poradnia okulistyczna",
             "Radom", None, None, None, None],
            [2025, 3, "", "", "", "", "", "", "", "", ""],
        ]
    )


def make_appointment(**overrides) -> Appointment:
    values = {
        "region": "mazowieckie",
        "facility_name": "Przychodnia",
        "service_name": "PORADNIA KARDIOLOGICZNA",
        "location": "Warszawa",
    }
    values.update(overrides)
    return Appointment(**values)


@pytest.fixture
def appointment_factory() -> Callable[..., Appointment]:
    return make_appointment
