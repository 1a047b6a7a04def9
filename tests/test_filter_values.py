import unittest
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, Numeric, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from paginate_helper.core.errors import InvalidFilterValue
from paginate_helper.services.filter_values import coerce_filter_value, is_date_only_literal


class _Base(DeclarativeBase):
    pass


class _FilterTestModel(_Base):
    __tablename__ = "_filter_values_test_model"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    bool_col: Mapped[bool] = mapped_column(Boolean)
    int_col: Mapped[int] = mapped_column(Integer)
    float_col: Mapped[float] = mapped_column(Float)
    numeric_col: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    date_col: Mapped[date] = mapped_column(Date)
    dt_col: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    naive_dt_col: Mapped[datetime] = mapped_column(DateTime(timezone=False))
    uuid_col: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True))
    text_col: Mapped[str] = mapped_column(String(50))


class FilterValueCoercionTests(unittest.TestCase):
    def test_boolean_accepts_string_values(self):
        self.assertTrue(coerce_filter_value(_FilterTestModel.bool_col, "true"))
        self.assertTrue(coerce_filter_value(_FilterTestModel.bool_col, "Да"))
        self.assertFalse(coerce_filter_value(_FilterTestModel.bool_col, "0"))
        self.assertFalse(coerce_filter_value(_FilterTestModel.bool_col, "нет"))

    def test_boolean_invalid_value(self):
        with self.assertRaises(InvalidFilterValue) as ctx:
            coerce_filter_value(_FilterTestModel.bool_col, "maybe")
        self.assertEqual(ctx.exception.field, "bool_col")

    def test_numbers_accept_string_values(self):
        self.assertEqual(coerce_filter_value(_FilterTestModel.int_col, "42"), 42)
        self.assertAlmostEqual(coerce_filter_value(_FilterTestModel.float_col, "3.14"), 3.14)
        self.assertAlmostEqual(coerce_filter_value(_FilterTestModel.float_col, "3,14"), 3.14)
        self.assertEqual(coerce_filter_value(_FilterTestModel.numeric_col, "99.50"), Decimal("99.50"))

    def test_numbers_reject_garbage(self):
        for value in ("", "abc", True, 2.5):
            with self.assertRaises(InvalidFilterValue, msg=repr(value)):
                coerce_filter_value(_FilterTestModel.int_col, value)

    def test_dates_accept_iso_date_and_datetime(self):
        self.assertEqual(coerce_filter_value(_FilterTestModel.date_col, "2026-02-26"), date(2026, 2, 26))
        self.assertEqual(
            coerce_filter_value(_FilterTestModel.date_col, "2026-02-26T13:45:00+03:00"),
            date(2026, 2, 26),
        )

    def test_aware_datetime_accepts_date_only(self):
        value = coerce_filter_value(_FilterTestModel.dt_col, "2026-02-26")
        self.assertIsInstance(value, datetime)
        self.assertEqual(value.date(), date(2026, 2, 26))
        self.assertEqual(value.tzinfo, timezone.utc)

    def test_naive_datetime_stays_naive(self):
        value = coerce_filter_value(_FilterTestModel.naive_dt_col, "2026-02-26T10:15:00+03:00")
        self.assertIsNone(value.tzinfo)
        self.assertEqual(value, datetime(2026, 2, 26, 7, 15, 0))

    def test_uuid(self):
        uid = uuid.uuid4()
        self.assertEqual(coerce_filter_value(_FilterTestModel.uuid_col, str(uid)), uid)
        with self.assertRaises(InvalidFilterValue):
            coerce_filter_value(_FilterTestModel.uuid_col, "not-a-uuid")

    def test_text(self):
        self.assertEqual(coerce_filter_value(_FilterTestModel.text_col, "abc"), "abc")
        self.assertEqual(coerce_filter_value(_FilterTestModel.text_col, 7), "7")

    def test_date_only_literal(self):
        self.assertTrue(is_date_only_literal("2026-02-26"))
        self.assertTrue(is_date_only_literal(date(2026, 2, 26)))
        self.assertFalse(is_date_only_literal("2026-02-26T09:30:00"))
        self.assertFalse(is_date_only_literal(datetime(2026, 2, 26)))
        self.assertFalse(is_date_only_literal("yesterday"))


if __name__ == "__main__":
    unittest.main()
