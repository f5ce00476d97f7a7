"""
Option kinds and the product family each one belongs to.

Values are the spellings used by pricing requests ("call-knockout",
"double-no-touch", ...), so a request's optionType maps straight onto a
member through OptionKind.parse.
"""

from enum import Enum


class ProductFamily(Enum):
    VANILLA = "vanilla"
    BARRIER = "barrier"
    DIGITAL = "digital"


class OptionKind(Enum):
    CALL = "call"
    PUT = "put"

    # regular: barrier out of the money (calls down, puts up)
    CALL_KNOCK_OUT = "call-knockout"
    PUT_KNOCK_OUT = "put-knockout"
    CALL_KNOCK_IN = "call-knockin"
    PUT_KNOCK_IN = "put-knockin"

    # reverse: barrier in the money (calls up, puts down)
    CALL_REVERSE_KNOCK_OUT = "call-reverse-knockout"
    PUT_REVERSE_KNOCK_OUT = "put-reverse-knockout"
    CALL_REVERSE_KNOCK_IN = "call-reverse-knockin"
    PUT_REVERSE_KNOCK_IN = "put-reverse-knockin"

    CALL_DOUBLE_KNOCK_OUT = "call-double-knockout"
    PUT_DOUBLE_KNOCK_OUT = "put-double-knockout"
    CALL_DOUBLE_KNOCK_IN = "call-double-knockin"
    PUT_DOUBLE_KNOCK_IN = "put-double-knockin"

    ONE_TOUCH = "one-touch"
    NO_TOUCH = "no-touch"
    DOUBLE_TOUCH = "double-touch"
    DOUBLE_NO_TOUCH = "double-no-touch"
    RANGE_BINARY = "range-binary"
    OUTSIDE_BINARY = "outside-binary"
    DIGITAL_CALL = "digital-call"
    DIGITAL_PUT = "digital-put"

    @property
    def family(self) -> ProductFamily:
        if self in (OptionKind.CALL, OptionKind.PUT):
            return ProductFamily.VANILLA
        if "knock" in self.value:
            return ProductFamily.BARRIER
        return ProductFamily.DIGITAL

    @property
    def is_call(self) -> bool:
        return self.value.startswith("call") or self is OptionKind.DIGITAL_CALL

    @property
    def is_double(self) -> bool:
        return self.value.startswith("double") or "-double-" in self.value

    @property
    def is_knock_in(self) -> bool:
        return self.value.endswith("knockin")

    @property
    def is_knock_out(self) -> bool:
        return self.value.endswith("knockout")

    @property
    def is_reverse(self) -> bool:
        return "-reverse-" in self.value

    @property
    def needs_strike(self) -> bool:
        return self.family is not ProductFamily.DIGITAL or self in (OptionKind.DIGITAL_CALL, OptionKind.DIGITAL_PUT)

    @property
    def needs_barrier(self) -> bool:
        return self.family is ProductFamily.BARRIER or self in (
            OptionKind.ONE_TOUCH, OptionKind.NO_TOUCH, OptionKind.DOUBLE_TOUCH,
            OptionKind.DOUBLE_NO_TOUCH, OptionKind.RANGE_BINARY, OptionKind.OUTSIDE_BINARY,
        )

    @property
    def is_path_dependent(self) -> bool:
        """Monitored against its barrier(s) over the whole life, not only at expiry."""
        return self.needs_barrier and self not in (OptionKind.RANGE_BINARY, OptionKind.OUTSIDE_BINARY)

    @property
    def needs_second_barrier(self) -> bool:
        return self.is_double or self in (OptionKind.RANGE_BINARY, OptionKind.OUTSIDE_BINARY)

    @classmethod
    def parse(cls, value) -> "OptionKind":
        """
        Accepts member values, member names and the usual spelling
        variants: "call_knock_out", "Call Knock-Out", "CALL_KNOCK_OUT".
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        text = text.replace("knock-out", "knockout").replace("knock-in", "knockin")
        aliases = {"c": "call", "p": "put", "dnt": "double-no-touch", "ot": "one-touch",
                   "nt": "no-touch", "range": "range-binary", "outside": "outside-binary"}
        try:
            return cls(aliases.get(text, text))
        except ValueError:
            raise ValueError(f"unknown option type: {value!r}") from None
