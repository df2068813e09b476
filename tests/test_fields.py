"""Tests for the field DSL parser and the type helpers built on it."""

import pytest
from pydantic import ValidationError

from crudforge.errors import FieldParseError, SpecError
from crudforge.fields import (
    FieldParser,
    base_type,
    form_type,
    is_nullable_type,
    python_annotation,
    required_imports,
    sql_column,
    sqlalchemy_names,
    ts_type,
)
from crudforge.spec import EntityField


@pytest.fixture()
def parser():
    return FieldParser()


class TestFieldParser:
    def test_parse_basic(self, parser):
        fields = parser.parse("name:string!,price:float64!,active:bool")

        assert [f.name for f in fields] == ["Name", "Price", "Active"]
        assert [f.type for f in fields] == ["str", "float", "bool"]
        assert [f.required for f in fields] == [True, True, False]
        assert [f.serialized_name for f in fields] == ["name", "price", "active"]

    def test_names_are_normalized(self, parser):
        field = parser.parse("unit_price:decimal")[0]
        assert field.name == "UnitPrice"
        assert field.serialized_name == "unit_price"
        assert field.type == "Decimal"

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty_input(self, parser, value):
        assert parser.parse(value) == []

    def test_empty_tokens_are_skipped(self, parser):
        assert len(parser.parse("name:string,, price:int ,")) == 2

    @pytest.mark.parametrize("token", ["name", "name:", ":string", "name:!", "a:b:c"])
    def test_malformed_token(self, parser, token):
        with pytest.raises(FieldParseError) as exc:
            parser.parse(token)
        assert isinstance(exc.value, SpecError)
        assert exc.value.token == token

    def test_unknown_type_passes_through(self, parser):
        assert parser.parse("meta:CustomType")[0].type == "CustomType"

    def test_bracketed_types_keep_their_commas(self, parser):
        fields = parser.parse("scores:dict[str, int],name:string")
        assert [f.type for f in fields] == ["dict[str, int]", "str"]

    def test_storage_and_comment(self, parser):
        price, note = parser.parse("price:float64!,note:text")
        assert price.storage == '"price", Numeric(10, 2), nullable=False'
        assert price.comment == "Price 64-bit float"
        assert note.storage == '"note", String(255), nullable=True'
        assert note.comment == "Note string"


class TestEntityField:
    def test_serialized_name_is_derived(self):
        field = EntityField(name="UserName", type="str")
        assert field.serialized_name == "user_name"

    def test_alias_is_accepted_when_consistent(self):
        field = EntityField.model_validate({"name": "UserName", "type": "str", "serializedName": "user_name"})
        assert field.serialized_name == "user_name"

    def test_mismatched_serialized_name(self):
        with pytest.raises(ValidationError):
            EntityField(name="UserName", type="str", serialized_name="username")


class TestTypeHelpers:
    def test_wrappers(self):
        assert base_type("NullInt64") == "Int64"
        assert base_type("Optional[dict]") == "dict"
        assert base_type("str") == "str"
        assert is_nullable_type("NullStr")
        assert not is_nullable_type("str")

    def test_python_annotation(self):
        assert python_annotation("NullStr") == "str | None"
        assert python_annotation("int", optional=True) == "int | None"
        assert python_annotation("bool") == "bool"

    @pytest.mark.parametrize("type_name, expected", [
        ("Int64", "number"),
        ("NullFloat", "number"),
        ("Decimal", "number"),
        ("bool", "boolean"),
        ("dict", "Record<string, unknown>"),
        ("datetime", "string"),
        ("NullStr", "string"),
    ])
    def test_ts_type(self, type_name, expected):
        assert ts_type(type_name) == expected

    @pytest.mark.parametrize("type_name, field_name, expected", [
        ("str", "Email", "email"),
        ("str", "Password", "password"),
        ("str", "Description", "textarea"),
        ("Int8", "IsActive", "switch"),
        ("bool", "Published", "switch"),
        ("float", "Price", "number"),
        ("datetime", "PublishedAt", "datetime"),
        ("str", "Title", "input"),
    ])
    def test_form_type(self, type_name, field_name, expected):
        assert form_type(type_name, field_name) == expected

    def test_required_imports(self, parser):
        imports = required_imports(parser.parse("published:datetime,stock:int64,rating:NullFloat"))
        assert imports["sqlalchemy"] == ["BigInteger", "DateTime", "Numeric"]
        assert imports["base"] == ["Int64", "NullFloat"]
        assert imports["stdlib"] == ["from datetime import datetime"]

    def test_comment_words_are_not_types(self):
        assert sqlalchemy_names('"title", String(255), comment="Text of JSON"') == {"String"}
        assert sqlalchemy_names('"active", Boolean, server_default=text("0")') == {"Boolean", "text"}


class TestSqlColumn:
    def test_mysql(self, parser):
        price, active = parser.parse("price:float64!,active:bool")
        assert sql_column(price) == "price DECIMAL(10,2) NOT NULL"
        assert sql_column(active) == "active TINYINT(1) DEFAULT FALSE"

    def test_postgres(self, parser):
        meta, active = parser.parse("meta:json,active:bool!")
        assert sql_column(meta, "postgres") == "meta JSONB"
        assert sql_column(active, "postgres") == "active BOOLEAN NOT NULL DEFAULT FALSE"

    def test_sqlite(self, parser):
        active, stock = parser.parse("active:bool,stock:uint64")
        assert sql_column(active, "sqlite") == "active BOOLEAN DEFAULT 0"
        assert sql_column(stock, "sqlite") == "stock INTEGER"

    def test_unknown_type_is_text(self, parser):
        assert sql_column(parser.parse("meta:CustomType")[0]) == "meta TEXT"
