from src.queue_finder.schemas.nfz import NFZQueue
from src.queue_finder.services.mapping import (
    UNKNOWN_FACILITY,
    UNKNOWN_SERVICE,
    derive_data_period,
    from_api_record,
    from_spreadsheet_row,
    split_cell_address,
)
from src.queue_finder.services.spreadsheet.rows import map_columns


def _queue(**attributes) -> NFZQueue:
    base = {
        "case": 1,
        "benefit": "PORADNIA KARDIOLOGICZNA",
        "provider": "SZPITAL &quot;MEDYK&quot;",
        "place": "PORADNIA",
        "address": "UL. POLNA 1",
        "locality": "WARSZAWA",
        "phone": "22 123 45 67",
        "latitude": 52.23,
        "longitude": 21.01,
        "statistics": {"provider-data": {"awaiting": 14, "average-period": 30}},
        "dates": {"date": "2025-05-01", "date-situation-as-at": "2025-04-20"},
    }
    base.update(attributes)
    return NFZQueue.model_validate({"type": "queues", "id": "q-1", "attributes": base})


def test_cell_address_is_decomposed() -> None:
    assert split_cell_address("Warszawa;ul. Polna 1;+48123456789") == (
        "Warszawa",
        "Warszawa, ul. Polna 1",
        "+48123456789",
    )
    assert split_cell_address("Radom") == ("Radom", "Radom", None)
    assert split_cell_address(";ul. Polna 1;+48123") == ("", "ul. Polna 1", "+48123")


def test_api_record_is_mapped() -> None:
    appointment = from_api_record(_queue(), "mazowieckie")

    assert appointment is not None
    assert appointment.api_id == "q-1"
    assert appointment.facility_name == 'SZPITAL "MEDYK"'
    assert appointment.location == "WARSZAWA"
    assert appointment.first_available_date == "2025-05-01"
    assert appointment.data_preparation_date == "2025-04-20"
    assert appointment.waiting_time == "30"
    assert appointment.average_waiting_days == 30
    assert appointment.number_of_waiting == 14
    assert appointment.coordinate is not None
    assert not appointment.is_urgent


def test_api_record_fallbacks() -> None:
    queue = _queue(
        provider=None,
        benefit="  ",
        case=2,
        statistics={"provider-data": {"awaiting": -3}, "computed-data": {"average-period": 9}},
    )
    appointment = from_api_record(queue, "mazowieckie")

    assert appointment is not None
    assert appointment.facility_name == UNKNOWN_FACILITY
    assert appointment.service_name == UNKNOWN_SERVICE
    assert appointment.number_of_waiting is None
    assert appointment.average_waiting_days == 9
    assert appointment.is_urgent


def test_api_record_without_locality_or_attributes_is_dropped() -> None:
    assert from_api_record(_queue(locality=""), "mazowieckie") is None
    assert from_api_record(NFZQueue(id="x"), "mazowieckie") is None


def test_spreadsheet_row_mapping() -> None:
    columns = map_columns(["Nazwa świadczeniodawcy", "Nazwa świadczenia", "Adres komórki", "Liczba oczekujących", "Średni czas oczekiwania"])
    row = ["Przychodnia &amp; Spółka", "PORADNIA OKULISTYCZNA", "Kraków;ul. Długa 5", "1 204", "21"]

    appointment = from_spreadsheet_row(row, columns, "małopolskie")

    assert appointment is not None
    assert appointment.facility_name == "Przychodnia & Spółka"
    assert appointment.location == "Kraków"
    assert appointment.address == "Kraków, ul. Długa 5"
    assert appointment.number_of_waiting == 1204
    assert appointment.waiting_time == "21 dni"


def test_sparse_spreadsheet_row_is_dropped() -> None:
    columns = map_columns(["Nazwa świadczeniodawcy", "Nazwa świadczenia", "Adres komórki"])
    assert from_spreadsheet_row(["Przychodnia", "", "Kraków"], columns, "małopolskie") is None
    assert from_spreadsheet_row(["Przychodnia"], columns, "małopolskie") is None


def test_spreadsheet_row_without_city_is_dropped() -> None:
    columns = map_columns(["Nazwa świadczenia", "Nazwa świadczeniodawcy", "Adres komórki"])
    assert from_spreadsheet_row(["PORADNIA", "SZPITAL", ";ul. Polna 1;+48123"], columns, "mazowieckie") is None


def test_data_period_without_explicit_columns() -> None:
    columns = map_columns(["", "", "Nazwa świadczenia"])
    rows = [["", "", "Nazwa świadczenia"], ["2024", "11", "PORADNIA"]]
    assert derive_data_period(rows, 0, columns) == ("2024", "11")
    assert derive_data_period([["x"]], 0, columns) == (None, None)
