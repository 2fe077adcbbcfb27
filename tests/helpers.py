from rdflib import URIRef

A = URIRef("http://example.com/a")
B = URIRef("http://example.com/b")
C = URIRef("http://example.com/c")

SELECT_B = "SELECT ?s ?o WHERE { ?s <http://example.com/b> ?o . }"


async def add_data(factory):
    connection = await factory.get_connection()
    await connection.add(A, B, C)


async def select_b(factory):
    connection = await factory.get_connection()
    return await connection.select(SELECT_B)


def assert_data_present(rows):
    assert len(rows) == 1
    assert str(rows[0]["s"]) == "http://example.com/a"
    assert str(rows[0]["o"]) == "http://example.com/c"
