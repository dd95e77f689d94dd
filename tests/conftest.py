"""Shared fixtures: a todo-list schema with relationships, maps, unions and calculations."""

import pytest

from typed_selections.types import (
    ArgDefinition,
    ArgSpec,
    Calculation,
    EntityRegistry,
    NestedMap,
    PrimitiveField,
    Relationship,
    Resource,
    ScalarType,
    TypedMap,
    Union,
    UnionField,
)

TODO_SCHEMA = """
# Todo list example
define uuid as string

resource User {
    id: uuid,
    name: string,
    email: string?,
    todos: -> Todo[],
    best_friend: -> User?,
}

resource Todo {
    id: uuid,
    title: string,
    done: boolean,
    tags: string[],
    author: -> User?,
    metadata: TodoMetadata?,
    content: Content,
    calc summary(length: number): string,
    calc related(limit?: number): Todo[],
    calc word_count: number,
}

map TodoMetadata {
    priority: number,
    notes: string?,
}

resource TextContent { text: string, format: string }
resource ImageContent { url: string, width: number }

union Content on type {
    text: TextContent,
    image: ImageContent,
    note: string,
}
"""

STRING = ScalarType.STRING
NUMBER = ScalarType.NUMBER
BOOLEAN = ScalarType.BOOLEAN


def build_todo_registry() -> EntityRegistry:
    """Build the same schema as TODO_SCHEMA by hand."""
    user = Resource("User")
    todo = Resource("Todo")
    metadata = TypedMap("TodoMetadata")
    text = Resource("TextContent")
    image = Resource("ImageContent")

    user.add_primitive(PrimitiveField("id", STRING))
    user.add_primitive(PrimitiveField("name", STRING))
    user.add_primitive(PrimitiveField("email", STRING, nullable=True))
    user.add_field(Relationship("todos", todo, array=True))
    user.add_field(Relationship("best_friend", user, nullable=True))

    metadata.add_primitive(PrimitiveField("priority", NUMBER))
    metadata.add_primitive(PrimitiveField("notes", STRING, nullable=True))

    text.add_primitive(PrimitiveField("text", STRING))
    text.add_primitive(PrimitiveField("format", STRING))
    image.add_primitive(PrimitiveField("url", STRING))
    image.add_primitive(PrimitiveField("width", NUMBER))

    content = Union("Content", variants={"text": text, "image": image, "note": STRING}, tag_field="type")

    todo.add_primitive(PrimitiveField("id", STRING))
    todo.add_primitive(PrimitiveField("title", STRING))
    todo.add_primitive(PrimitiveField("done", BOOLEAN))
    todo.add_primitive(PrimitiveField("tags", STRING, array=True))
    todo.add_field(Relationship("author", user, nullable=True))
    todo.add_field(NestedMap("metadata", metadata, nullable=True))
    todo.add_field(UnionField("content", content))
    todo.add_field(
        Calculation("summary", STRING, ArgSpec([ArgDefinition("length", NUMBER)]))
    )
    todo.add_field(
        Calculation(
            "related",
            todo,
            ArgSpec([ArgDefinition("limit", NUMBER, required=False)]),
            array=True,
        )
    )
    todo.add_field(Calculation("word_count", NUMBER))

    registry = EntityRegistry()
    for entity in (user, todo, metadata, text, image, content):
        registry.register(entity)
    registry.freeze()
    return registry


@pytest.fixture
def registry() -> EntityRegistry:
    return build_todo_registry()


@pytest.fixture
def todo(registry):
    return registry.resolve("Todo")


@pytest.fixture
def user(registry):
    return registry.resolve("User")


@pytest.fixture
def todo_schema() -> str:
    return TODO_SCHEMA
