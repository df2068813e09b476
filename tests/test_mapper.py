"""Tests for relational column type mapping."""

import pytest

from crudforge.mapper import TypeMapper
from crudforge.spec import ColumnDescriptor


def column(name="value", data_type="varchar", full_type="", **kwargs):
    return ColumnDescriptor(name=name, data_type=data_type, full_type=full_type or data_type, **kwargs)


@pytest.fixture()
def mapper():
    return TypeMapper()


class TestBaseType:
    @pytest.mark.parametrize("data_type, full_type, expected", [
        ("varchar", "varchar(100)", "str"),
        ("char", "char(2)", "str"),
        ("longtext", "longtext", "str"),
        ("tinyint", "tinyint(1)", "bool"),
        ("tinyint", "tinyint(4)", "Int8"),
        ("tinyint", "tinyint(3) unsigned", "UInt8"),
        ("smallint", "smallint(6)", "Int16"),
        ("int", "int(11)", "Int32"),
        ("int", "int(10) unsigned", "UInt32"),
        ("bigint", "bigint(20)", "Int64"),
        ("bigint", "bigint(20) unsigned", "UInt64"),
        ("float", "float", "Float32"),
        ("double", "double", "float"),
        ("decimal", "decimal(10,2)", "float"),
        ("boolean", "boolean", "bool"),
        ("datetime", "datetime", "datetime"),
        ("timestamp", "timestamp", "datetime"),
        ("date", "date", "datetime"),
        ("json", "json", "dict"),
        ("blob", "blob", "bytes"),
        ("varbinary", "varbinary(16)", "bytes"),
        ("geometry", "geometry", "str"),
    ])
    def test_not_null_columns(self, mapper, data_type, full_type, expected):
        assert mapper.map_type(column(data_type=data_type, full_type=full_type)) == expected


class TestNullability:
    @pytest.mark.parametrize("data_type, full_type, expected", [
        ("varchar", "varchar(100)", "NullStr"),
        ("int", "int(11)", "NullInt32"),
        ("bigint", "bigint(20)", "NullInt64"),
        ("decimal", "decimal(10,2)", "NullFloat"),
        ("tinyint", "tinyint(1)", "NullBool"),
        ("datetime", "datetime", "NullDatetime"),
        ("json", "json", "Optional[dict]"),
        ("tinyint", "tinyint(4)", "Optional[Int8]"),
    ])
    def test_nullable_columns_are_wrapped(self, mapper, data_type, full_type, expected):
        assert mapper.map_type(column(data_type=data_type, full_type=full_type, nullable=True)) == expected

    def test_primary_key_is_never_wrapped(self, mapper):
        pk = column(name="id", data_type="bigint", nullable=True, primary_key=True)
        assert mapper.map_type(pk) == "Int64"


class TestStorageAnnotation:
    def test_varchar_not_null(self, mapper):
        title = column(name="title", data_type="varchar", full_type="varchar(100)", max_length=100)
        assert mapper.storage_annotation(title) == '"title", String(100), nullable=False'

    def test_string_default_is_quoted(self, mapper):
        status = column(name="status", data_type="varchar", max_length=20, default="draft", nullable=True)
        assert mapper.storage_annotation(status) == '"status", String(20), server_default=text("\'draft\'")'

    def test_numeric_default_stays_bare(self, mapper):
        stock = column(name="stock", data_type="int", default="0")
        assert mapper.storage_annotation(stock) == '"stock", Integer, nullable=False, server_default=text("0")'

    def test_primary_key(self, mapper):
        pk = column(name="id", data_type="bigint", primary_key=True, auto_increment=True)
        assert mapper.storage_annotation(pk) == '"id", BigInteger, primary_key=True, autoincrement=True'

    def test_comment_keeps_unicode(self, mapper):
        title = column(name="title", data_type="text", nullable=True, comment="标题")
        assert mapper.storage_annotation(title) == '"title", Text, comment="标题"'

    def test_decimal_precision(self, mapper):
        price = column(name="price", data_type="decimal", max_length=12, numeric_scale=4, nullable=True)
        assert mapper.sqlalchemy_type(price) == "Numeric(12, 4)"
        assert mapper.sqlalchemy_type(column(data_type="decimal")) == "Numeric(10, 2)"
