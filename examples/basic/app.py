import asyncio

from rdflib import Literal, Namespace
from rdflib.namespace import FOAF, RDF

from graphtx import (
    MemoryRepository,
    RepositoryConnectionFactory,
    TransactionCoordinator,
    transactional,
)

EX = Namespace("http://example.com/people/")

factory = RepositoryConnectionFactory(MemoryRepository("people"))
TransactionCoordinator(factory)


@transactional
async def add_person(slug: str, name: str) -> None:
    connection = await factory.get_connection()
    await connection.add(EX[slug], RDF.type, FOAF.Person)
    await connection.add(EX[slug], FOAF.name, Literal(name))


@transactional(read_only=True)
async def list_people():
    connection = await factory.get_connection()
    return await connection.select(
        """
        PREFIX foaf: <http://xmlns.com/foaf/0.1/>
        SELECT ?person ?name WHERE {
            ?person a foaf:Person ; foaf:name ?name
        }
        """
    )


async def run():
    await add_person("ada", "Ada Lovelace")
    await add_person("alan", "Alan Turing")
    print(await list_people())
    await factory.destroy()


asyncio.run(run())
