"""Constants and row builders shared by test modules."""

TEST_PASSWORD = "secreto123"


def worker_row(**overrides):
    """A worker row that passes every check against the conftest catalogs."""
    row = {
        "numeroEmpleado": "10",
        "nombres": "Luis",
        "primerApellido": "Rodríguez",
        "segundoApellido": "Hernández",
        "rfc": "ROHL900315AB1",
        "curp": "ROHL900315HJCDRS04",
        "nss": "123-4567-8901",
        "fechaNacimiento": "1990-03-15",
        "genero": "M",
        "estadocivil": "S",
        "email": "luis.rodriguez@cnorte.mx",
        "telefono": "3312345678",
        "codigoPostal": "44100",
        "puesto": "Analista",
        "fechaIngreso": "2025-01-06",
        "salarioDiario": "450.00",
        "calendario": "Quincenal 2025",
    }
    row.update(overrides)
    return row
