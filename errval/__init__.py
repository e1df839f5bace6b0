# coding: utf-8

"""
Values with uncertainties and automatic, linear error propagation through arithmetic and
transcendental functions, with numpy support.
"""

from __future__ import annotations

__author__ = "The errval authors"
__copyright__ = "Copyright 2024, The errval authors"
__credits__ = ["The errval authors"]
__license__ = "BSD-3-Clause"
__status__ = "Beta"
__version__ = "0.3.0"
__all__ = [
    "ErrorValue", "ValueWithUncertainty", "DefaultUncertainty", "Operation", "ops", "style_dict",
    "ZERO", "HALF_LAST_DIGIT", "CUSTOM",
    "calculate_uncertainty", "half_last_digit", "split_value", "infer_si_prefix",
    "add", "sub", "mul", "div", "pow", "exp", "expm1", "exp2", "log", "log10", "log2", "log1p",
    "logn", "sqrt", "cbrt", "sin", "cos", "tan", "asin", "acos", "atan", "atan2", "sinh", "cosh",
    "tanh", "asinh", "acosh", "atanh", "hypot", "erf", "erfc", "tgamma", "lgamma", "absolute",
    "fma",
]

import math
import enum
import numbers
import decimal
import functools
from types import ModuleType
from typing import TypeVar, Callable, Any, Sequence, Tuple, Union

T = TypeVar("T")

# optional imports
try:
    import numpy as np
    HAS_NUMPY = True
except ImportError:
    np = None  # type: ignore[assignment]
    HAS_NUMPY = False

try:
    import numpy.typing
    NDArray = numpy.typing.NDArray
except ImportError:
    NDArray = None  # type: ignore[assignment, misc]

try:
    import scipy.special as _special  # type: ignore[import-untyped]
    HAS_SCIPY = True
except ImportError:
    _special = None
    HAS_SCIPY = False

try:
    import uncertainties as _uncs  # type: ignore[import-untyped]
    HAS_UNCERTAINTIES = True
except ImportError:
    _uncs = None
    HAS_UNCERTAINTIES = False


# type aliases
InValueType = Union[float, int, numbers.Real, NDArray]
OutValueType = Union[float, int, numbers.Real, NDArray]
UncType = Union[float, NDArray]
TermType = Tuple[Union[float, NDArray], Union[float, NDArray]]


class typed(property):
    """
    Shorthand for the most common property definition. Can be used as a decorator to wrap around
    a single function. Example:

    .. code-block:: python

        class Measurement(object):

            def __init__(self):
                self._width = 0.0

            @typed
            def width(self, width):
                if width < 0:
                    raise ValueError("negative width: {}".format(width))
                return float(width)

        m = Measurement()
        m.width = -1   # -> ValueError
        m.width = 2    # -> ok
        print(m.width)  # -> prints "2.0"

    In the example above, set/get calls target the instance member ``_width``, i.e. "_<function_name>".
    The member name can be configured by setting *name*. If *setter* (*deleter*) is *True* (the
    default), a setter (deleter) method is booked as well. Prior to updating the member when the
    setter is called, *fparse* is invoked which may implement sanity checks.
    """

    def __init__(
        self,
        fparse: Callable[[T], T | None] | None = None,
        *,
        setter: bool = True,
        deleter: bool = True,
        name: str | None = None,
    ) -> None:
        # only register the property if fparse is set
        if fparse is not None:
            self.fparse = fparse

            # build the default name
            if name is None:
                name = fparse.__name__
            self.__name__ = name

            # the name of the wrapped member
            m_name = "_" + name

            super().__init__(
                functools.wraps(fparse)(self._fget(m_name)),
                self._fset(m_name) if setter else None,
                self._fdel(m_name) if deleter else None,
            )

        # store setter and deleter flags, and the name
        self._setter = setter
        self._deleter = deleter
        self._name = name

    def __call__(self, fparse: Callable[[T], T | None]) -> typed:
        return self.__class__(fparse, setter=self._setter, deleter=self._deleter, name=self._name)

    def _fget(self, name: str) -> Callable[[typed], Any]:
        def fget(inst: typed) -> Any:
            return getattr(inst, name)
        return fget

    def _fset(self, name: str) -> Callable[[typed, Any], None]:
        def fset(inst: typed, value: Any) -> None:
            # the setter runs the wrapped parser first
            value = self.fparse.__get__(inst)(value)
            setattr(inst, name, value)
        return fset

    def _fdel(self, name: str) -> Callable[[typed], None]:
        def fdel(inst: typed) -> None:
            delattr(inst, name)
        return fdel


class DefaultUncertainty(enum.Enum):
    """
    Enumeration of methods that assign an uncertainty to a bare number when it is combined with an
    :py:class:`ErrorValue`.
    """

    ZERO = "zero"
    HALF_LAST_DIGIT = "half_last_digit"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, method: DefaultUncertainty | str) -> DefaultUncertainty:
        """
        Returns the member matching *method*, which can be a member or its string value. A
        *ValueError* is raised for unknown methods.
        """
        try:
            return cls(method)
        except (ValueError, TypeError):
            raise ValueError(f"invalid default uncertainty method: {method!r}")

    def __str__(self) -> str:
        return self.value

    def __eq__(self, other: Any) -> bool:
        return str(self) == other

    def __hash__(self) -> int:
        return hash(self.value)


# shorthands
ZERO = DefaultUncertainty.ZERO
HALF_LAST_DIGIT = DefaultUncertainty.HALF_LAST_DIGIT
CUSTOM = DefaultUncertainty.CUSTOM


class ErrorValue(object):
    """ __init__(value=0.0, uncertainty=None, *, default_method=None, default_function=None, default_format=None, default_style=None)
    Implementation of a measured *value* together with its absolute *uncertainty*, i.e., the radius
    of the interval ``[value - uncertainty, value + uncertainty]``. *value* can be any real number
    except booleans, or a NumPy array. The uncertainty is always stored as a float (or a float
    array with the shape of *value*) and must not be negative.

    This class redefines most of Python's magic functions to allow transparent use in standard
    operations like ``+``, ``*``, etc. Linear uncertainty propagation is applied automatically,
    assuming independent uncertainties that add up in the worst case:

    .. code-block:: python

        a = ErrorValue(10.0, 0.5)
        b = ErrorValue(5.0, 0.2)
        print(a + b)  # -> '15.0 ± 0.7'

        a = ErrorValue(4.0, 0.1)
        b = ErrorValue(2.0, 0.05)
        print(a * b)  # -> '8.0 ± 0.4'

    When a bare number is combined with an instance, it is promoted to an :py:class:`ErrorValue`
    first, with an uncertainty decided by the *default_method* of the instance (see
    :py:meth:`set_default_method`):

    .. code-block:: python

        a = ErrorValue(10.0, 0.5, default_method="half_last_digit")
        print(a + 1200)  # -> '1210.0 ± 50.5'

    Comparisons only consider the value, the uncertainty is ignored. See :py:meth:`str` for
    information on string formatting.

    .. py:classattribute:: default_method

        type: DefaultUncertainty

        The default method (``ZERO``) that is used when no *default_method* was passed.

    .. py:classattribute:: default_format

        type: string

        The default format string (``"%s"``) that is used in :py:meth:`str()` when no format string
        was passed.

    .. py:classattribute:: default_style

        type: string

        The default style name (``"fancy"``) that is used in :py:meth:`str()` when no style argument
        was passed.

    .. py:attribute:: value

        type: int, float, NDArray

        The nominal value.

    .. py:attribute:: uncertainty

        type: float, NDArray

        The absolute, non-negative uncertainty.

    .. py:attribute:: is_numpy

        type: bool (read-only)

        Whether or not a NumPy array is wrapped.

    .. py:attribute:: shape

        type: tuple

        The shape of the wrapped NumPy array or *None*, depending on what type is wrapped.
    """

    default_method: DefaultUncertainty = DefaultUncertainty.ZERO
    default_format: str | Callable | None = "%s"
    default_style = "fancy"

    def __init__(
        self,
        value: InValueType | ErrorValue = 0.0,
        uncertainty: InValueType | None = None,
        *,
        default_method: DefaultUncertainty | str | None = None,
        default_function: Callable[[Any], UncType] | None = None,
        default_format: str | Callable | None = None,
        default_style: str | None = None,
    ) -> None:
        super().__init__()

        # wrapped values
        self._value: OutValueType = 0.0
        self._uncertainty: UncType = 0.0

        # copy from an other instance
        if isinstance(value, ErrorValue):
            if uncertainty is not None:
                raise ValueError("uncertainty must not be set when copying an ErrorValue")
            if default_method is None:
                default_method = value._default_method
                default_function = value._default_function
            default_format = default_format or value.default_format
            default_style = default_style or value.default_style
            value, uncertainty = value.value, value.uncertainty

        # conversion from uncertainties.ufloat
        elif is_ufloat(value):
            if uncertainty is not None:
                raise ValueError("uncertainty must not be set when converting a ufloat")
            value, uncertainty = parse_ufloat(value)

        # default uncertainty policy
        self._default_method: DefaultUncertainty = self.__class__.default_method
        self._default_function: Callable[[Any], UncType] | None = None
        self.set_default_method(default_method or self.__class__.default_method, default_function)

        # set initial values
        self.value = value
        self.uncertainty = 0.0 if uncertainty is None else uncertainty

        self.default_format = default_format  # type: ignore[assignment]
        self.default_style = default_style  # type: ignore[assignment]

    def _init_kwargs(self) -> dict[str, Any]:
        return {
            "default_method": self._default_method,
            "default_function": self._default_function,
            "default_format": self.default_format,
            "default_style": self.default_style,
        }

    @typed(deleter=False)
    def value(self, value: InValueType) -> OutValueType:
        # parser for the typed member holding the nominal value
        if is_numpy(value):
            if value.dtype.kind not in "iuf":
                raise TypeError(f"invalid value dtype: {value.dtype}")
            value = np.array(value)
            # check and adjust the uncertainty
            if not is_numpy(self._uncertainty):
                self._uncertainty = self._uncertainty * np.ones(value.shape, dtype=float)
            elif self._uncertainty.shape != value.shape:
                raise ValueError(f"shape not matching uncertainty shape: {value.shape}")
            return value

        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise TypeError(f"invalid value: {value!r}")
        if is_numpy(self._uncertainty):
            raise TypeError("cannot set value to plain number when uncertainty is an array")

        return value

    @typed(deleter=False)
    def uncertainty(self, uncertainty: InValueType) -> UncType:
        # parser for the typed member holding the uncertainty
        if is_numpy(uncertainty):
            if uncertainty.dtype.kind not in "iuf":
                raise TypeError(f"invalid uncertainty dtype: {uncertainty.dtype}")
            if not self.is_numpy:
                raise TypeError("cannot set uncertainty to array when value is a plain number")
            if uncertainty.shape != self.shape:
                raise ValueError(f"shape not matching value shape: {uncertainty.shape}")
            uncertainty = uncertainty.astype(float)
            if np.any(uncertainty < 0):
                raise ValueError(f"uncertainty must not be negative: {uncertainty}")
            return uncertainty

        if isinstance(uncertainty, bool) or not isinstance(uncertainty, numbers.Real):
            raise TypeError(f"invalid uncertainty: {uncertainty!r}")
        uncertainty = float(uncertainty)
        if uncertainty < 0:
            raise ValueError(f"uncertainty must not be negative: {uncertainty}")

        # convert to array when the value is an array
        if self.is_numpy:
            uncertainty = uncertainty * np.ones(self.shape, dtype=float)

        return uncertainty

    @property
    def is_numpy(self) -> bool:
        return is_numpy(self.value)

    @property
    def shape(self) -> None | tuple[int, ...]:
        return self.value.shape if self.is_numpy else None

    def set(self, value: InValueType, uncertainty: InValueType) -> None:
        """
        Replaces both the *value* and the *uncertainty* in-place. Both are validated before this
        instance is changed.
        """
        tmp = self.__class__(value, uncertainty)
        self._value, self._uncertainty = tmp.value, tmp.uncertainty

    def copy(
        self,
        value: InValueType | None = None,
        uncertainty: InValueType | None = None,
    ) -> ErrorValue:
        """
        Returns a copy of this instance, including its default uncertainty method and formatting
        options. When *value* or *uncertainty* are set, they overwrite the fields of the copy.
        """
        if value is None:
            value = self.value
        if uncertainty is None:
            uncertainty = self.uncertainty

        return self.__class__(value, uncertainty, **self._init_kwargs())

    def min(self) -> UncType:
        """
        Returns the lower bound of the uncertainty interval, ``value - uncertainty``.
        """
        return self.value - self.uncertainty

    def max(self) -> UncType:
        """
        Returns the upper bound of the uncertainty interval, ``value + uncertainty``.
        """
        return self.value + self.uncertainty

    def set_default_method(
        self,
        method: DefaultUncertainty | str,
        func: Callable[[Any], UncType] | None = None,
    ) -> None:
        """
        Sets the *method* that decides which uncertainty is assigned to bare numbers when they are
        combined with this instance. Possible values are

        - ``ZERO``: the number is considered exact,
        - ``HALF_LAST_DIGIT``: half a unit of the last significant decimal digit, see
          :py:func:`half_last_digit`,
        - ``CUSTOM``: the uncertainty is computed by calling *func* with the number.

        *func* must be set for ``CUSTOM`` only and is discarded when switching to another method.
        A *ValueError* is raised for unknown methods.
        """
        method = DefaultUncertainty.parse(method)

        if method is DefaultUncertainty.CUSTOM:
            if not callable(func):
                raise TypeError(f"custom default uncertainty method requires a callable: {func!r}")
        elif func is not None:
            raise ValueError(f"a function can only be set for method '{CUSTOM}', got '{method}'")

        self._default_method = method
        self._default_function = func

    def get_default_method(self) -> DefaultUncertainty:
        """
        Returns the current default uncertainty method.
        """
        return self._default_method

    def get_default_function(self) -> Callable[[Any], UncType] | None:
        """
        Returns the custom default uncertainty function when the method is ``CUSTOM``, and *None*
        otherwise.
        """
        if self._default_method is not DefaultUncertainty.CUSTOM:
            return None
        return self._default_function

    def default_uncertainty(self, x: InValueType) -> UncType:
        """
        Returns the uncertainty that the current default method assigns to a bare number *x*.
        """
        if self._default_method is DefaultUncertainty.ZERO:
            unc = np.zeros(np.shape(x), dtype=float) if is_numpy(x) else 0.0
        elif self._default_method is DefaultUncertainty.HALF_LAST_DIGIT:
            unc = half_last_digit(x)
        else:
            unc = self._default_function(x)  # type: ignore[misc]

        negative = np.any(unc < 0) if is_numpy(unc) else unc < 0
        if negative:
            raise ValueError(f"default uncertainty of {x} must not be negative: {unc}")

        return unc

    def promote(self, other: ErrorValue | InValueType) -> ErrorValue:
        """
        Returns *other* again if it is an :py:class:`ErrorValue` instance. Otherwise, a new instance
        is created with the uncertainty given by :py:meth:`default_uncertainty`, sharing the default
        uncertainty method and formatting options of this instance.
        """
        if isinstance(other, ErrorValue):
            return other
        if is_ufloat(other):
            return self.__class__(other, **self._init_kwargs())
        return self.__class__(other, self.default_uncertainty(other), **self._init_kwargs())

    def str(
        self,
        format: str | Callable | None = None,
        unit: str | None = None,
        scientific: bool = False,
        si: bool = False,
        style: str | None = None,
        styles: dict[str, str] | None = None,
        **kwargs,
    ) -> str:
        r"""
        Returns a readable string representation of the value and its uncertainty. *format* is
        used to format non-NumPy values. It can be a string such as ``"%.2f"``, a format spec as
        accepted by :py:func:`format` such as ``".2f"``, or a function that is called with the value
        to format. When *None* (the default), :py:attr:`default_format` is used. In case of NumPy
        arrays, *kwargs* are passed to `numpy.array2string
        <https://numpy.org/doc/stable/reference/generated/numpy.array2string.html>`_.

        When *unit* is set, it is appended to the end of the string. When *scientific* is *True*,
        all values are represented by their scientific notation. When *scientific* is *False* and
        *si* is *True*, the appropriate SI prefix is used. *style* can be ``"plain"``, ``"fancy"``,
        ``"latex"``, or ``"root"``. When *None* (the default), :py:attr:`default_style` is used.
        *styles* can be a dict with fields ``"space"``, ``"unit"``, ``"sym"`` and ``"sci"`` to
        customize every aspect of the format style on top of :py:attr:`style_dict`.

        Examples:

        .. code-block:: python

            e = ErrorValue(8848.0, 10.0)
            e.str()                                  # -> "8848.0 ± 10.0"
            e.str("%.2f")                            # -> "8848.00 ± 10.00"
            e.str(unit="m")                          # -> "8848.0 ± 10.0 m"
            e.str(unit="m", scientific=True)         # -> "8.848 ± 0.01 x 1E3 m"
            e.str(unit="m", si=True)                 # -> "8.848 ± 0.01 km"
            e.str(style="plain")                     # -> "8848.0 +- 10.0"
            e.str(unit="m", style="latex")           # -> "8848.0 \pm 10.0\,m"
            e.str(unit="m", style="root", si=True)   # -> "8.848 #pm 0.01 km"
        """
        if format is None:
            format = self.default_format or self.__class__.default_format
        if style is None:
            style = self.default_style or self.__class__.default_style

        # check style
        style = style.lower()
        if style not in style_dict:
            raise ValueError(f"unknown style '{style}'")
        d = dict(style_dict[style])

        # extend by custom styles
        if styles:
            d.update(styles)

        if self.is_numpy:
            text = np.array2string(self.value, **kwargs)
            text += d["space"] + d["sym"].format(unc=np.array2string(self.uncertainty, **kwargs))
            if unit:
                text += d["unit"].format(unit=unit)
            return text

        # scientific or SI notation
        prefix = ""
        mag = 0
        if scientific:
            mag = split_value(self.value)[1]
        elif si:
            prefix, mag = infer_si_prefix(self.value)
        transform = (lambda x: x / 10.0**mag) if mag else (lambda x: x)

        # prepare formatting
        if callable(format):
            fmt = format
        elif isinstance(format, str) and "%" in format:
            fmt = lambda x: format % x
        elif isinstance(format, str):
            fmt = lambda x: "{0:{1}}".format(x, format)
        else:
            raise ValueError(f"invalid format: {format!r}")

        text = fmt(transform(self.value))
        text += d["space"] + d["sym"].format(unc=fmt(transform(self.uncertainty)))

        # scientific notation or SI prefix, and unit
        if scientific and mag:
            text += d["space"] + d["sci"].format(mag=mag)
        _unit = prefix + (unit or "")
        if _unit:
            text += d["unit"].format(unit=_unit)

        return text

    def repr(self, *args, **kwargs) -> str:
        """
        Returns the unique string representation of the value, forwarding all *args* and *kwargs*
        to :py:meth:`str`.
        """
        if not self.is_numpy:
            text = "'" + self.str(*args, **kwargs) + "'"
        else:
            text = f"numpy array, shape {self.shape}"

        return f"<{self.__class__.__name__} at {hex(id(self))}, {text}>"

    def add(self, other: ErrorValue | InValueType, *, inplace: bool = True) -> ErrorValue:
        """
        Adds an *other* value, propagating uncertainties. When *inplace* is *False*, a new instance
        is returned.
        """
        return self._apply(ops.add, other, inplace=inplace)

    def sub(self, other: ErrorValue | InValueType, *, inplace: bool = True) -> ErrorValue:
        """
        Subtracts an *other* value, propagating uncertainties. When *inplace* is *False*, a new
        instance is returned.
        """
        return self._apply(ops.sub, other, inplace=inplace)

    def mul(self, other: ErrorValue | InValueType, *, inplace: bool = True) -> ErrorValue:
        """
        Multiplies by an *other* value, propagating uncertainties. When *inplace* is *False*, a new
        instance is returned.
        """
        return self._apply(ops.mul, other, inplace=inplace)

    def div(self, other: ErrorValue | InValueType, *, inplace: bool = True) -> ErrorValue:
        """
        Divides by an *other* value, propagating uncertainties. When *inplace* is *False*, a new
        instance is returned.
        """
        return self._apply(ops.div, other, inplace=inplace)

    def pow(self, other: ErrorValue | InValueType, *, inplace: bool = True) -> ErrorValue:
        """
        Raises by the power of an *other* value, propagating uncertainties. When *inplace* is
        *False*, a new instance is returned.
        """
        return self._apply(ops.pow, other, inplace=inplace)

    def inc(self, *, inplace: bool = True) -> ErrorValue:
        """
        Increments the value by one, which is promoted through the default uncertainty method
        first. Example:

        .. code-block:: python

            e = ErrorValue(7, 0.1, default_method="half_last_digit")
            e.inc()
            print(e)  # -> '8 ± 0.6'

        When *inplace* is *False*, a new instance is returned and this one remains unchanged.
        """
        return self._apply(ops.add, 1, inplace=inplace)

    def dec(self, *, inplace: bool = True) -> ErrorValue:
        """
        Decrements the value by one, see :py:meth:`inc`.
        """
        return self._apply(ops.sub, 1, inplace=inplace)

    def _apply(
        self,
        op: Operation,
        other: ErrorValue | InValueType,
        *,
        inplace: bool = True,
        reverse: bool = False,
    ) -> ErrorValue:
        if not is_operand(other):
            raise TypeError(f"cannot apply operation '{op.name}' to {other!r}")

        # bare numbers are promoted using the default uncertainty method of this instance
        other = self.promote(other)
        result = op(other, self) if reverse else op(self, other)

        if not inplace:
            return result

        # store values
        self._value, self._uncertainty = result.value, result.uncertainty

        return self

    def __array_ufunc__(
        self,
        ufunc: Callable,
        method: str,
        *inputs,
        **kwargs,
    ) -> ErrorValue:
        # only direct calls of the ufunc are supported
        if method != "__call__":
            return NotImplemented

        # try to find the proper op for that ufunc
        op = ops.get_ufunc_operation(ufunc)
        if op is None:
            return NotImplemented

        # extract kwargs, others are not supported
        out = kwargs.pop("out", None)
        if kwargs or not all(map(is_operand, inputs)):
            return NotImplemented

        # make sure all inputs are values with uncertainties
        result = op(*map(self.promote, inputs))

        # insert in-place to out when set
        if out is not None:
            out = out[0]
            if not isinstance(out, ErrorValue):
                return NotImplemented
            out.set(result.value, result.uncertainty)
            result = out

        return result

    def __getitem__(self, index: int) -> UncType:
        if isinstance(index, bool) or not isinstance(index, numbers.Integral) or index not in (0, 1):
            raise IndexError(f"{self.__class__.__name__} index must be 0 or 1, got {index!r}")

        if index == 1:
            return self.uncertainty
        return self.value.astype(float) if self.is_numpy else float(self.value)

    def __float__(self) -> float:
        # explicit conversion, drops the uncertainty
        return float(self.value)

    def __int__(self) -> int:
        # explicit conversion, drops the uncertainty
        return int(self.value)

    def __str__(self) -> str:
        # forward to default str
        return self.str()

    def __repr__(self) -> str:
        # forward to default repr
        return self.repr()

    def __format__(self, spec: str) -> str:
        # format specs never go through the %-operator
        return self.str(lambda x: "{0:{1}}".format(x, spec)) if spec else self.str()

    def _repr_latex_(self) -> str:
        return self.repr() if self.is_numpy else "${}$".format(self.str(style="latex"))

    def __bool__(self) -> bool:
        # forward to self.value
        return bool(self.value)

    def __eq__(self, other: Any) -> bool | NDArray:  # type: ignore[override]
        # compare values, element-wise for numpy
        other = ensure_value(other)
        if self.is_numpy or is_numpy(other):
            return np.equal(self.value, other)
        return self.value == other

    def __ne__(self, other: Any) -> bool | NDArray:  # type: ignore[override]
        other = ensure_value(other)
        if self.is_numpy or is_numpy(other):
            return np.not_equal(self.value, other)
        return self.value != other

    def __lt__(self, other: ErrorValue | InValueType) -> bool | NDArray:
        return self.value < ensure_value(other)

    def __le__(self, other: ErrorValue | InValueType) -> bool | NDArray:
        return self.value <= ensure_value(other)

    def __gt__(self, other: ErrorValue | InValueType) -> bool | NDArray:
        return self.value > ensure_value(other)

    def __ge__(self, other: ErrorValue | InValueType) -> bool | NDArray:
        return self.value >= ensure_value(other)

    def __pos__(self) -> ErrorValue:
        # simply copy
        return self.copy()

    def __neg__(self) -> ErrorValue:
        # simply copy and flip the value
        return self.copy(value=-self.value)

    def __abs__(self) -> ErrorValue:
        return ops.abs(self)

    def __add__(self, other: ErrorValue | InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self.add(other, inplace=False)

    def __radd__(self, other: InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self._apply(ops.add, other, inplace=False, reverse=True)

    def __iadd__(self, other: ErrorValue | InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self.add(other, inplace=True)

    def __sub__(self, other: ErrorValue | InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self.sub(other, inplace=False)

    def __rsub__(self, other: InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self._apply(ops.sub, other, inplace=False, reverse=True)

    def __isub__(self, other: ErrorValue | InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self.sub(other, inplace=True)

    def __mul__(self, other: ErrorValue | InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self.mul(other, inplace=False)

    def __rmul__(self, other: InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self._apply(ops.mul, other, inplace=False, reverse=True)

    def __imul__(self, other: ErrorValue | InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self.mul(other, inplace=True)

    def __truediv__(self, other: ErrorValue | InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self.div(other, inplace=False)

    def __rtruediv__(self, other: InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self._apply(ops.div, other, inplace=False, reverse=True)

    def __itruediv__(self, other: ErrorValue | InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self.div(other, inplace=True)

    def __pow__(self, other: ErrorValue | InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self.pow(other, inplace=False)

    def __rpow__(self, other: InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self._apply(ops.pow, other, inplace=False, reverse=True)

    def __ipow__(self, other: ErrorValue | InValueType) -> ErrorValue:
        if not is_operand(other):
            return NotImplemented
        return self.pow(other, inplace=True)


#: Alias of :py:class:`ErrorValue`.
ValueWithUncertainty = ErrorValue


class Operation(object):
    """
    Wrapper around a function and its partial derivatives, one per positional argument.

    .. py:attribute:: function

        type: function

        The wrapped function.

    .. py:attribute:: derivatives

        type: dict

        Mapping of positional argument indices to functions that compute the partial derivative
        with respect to that argument.

    .. py:attribute:: derivative

        type: function (read-only)

        The derivative with respect to the first argument.

    .. py:attribute:: name

        type: string (read-only)

        The name of the operation.

    .. py:attribute:: ufuncs

        type: list (read-only)

        List of ufunc objects that this operation handles.
    """

    def __init__(
        self,
        function: Callable,
        name: str | None = None,
        ufuncs: list[Callable] | None = None,
    ) -> None:
        super().__init__()

        # store attributes
        self.function = function
        self.derivatives: dict[int, Callable] = {}
        self._name: str = name or function.__name__
        self._ufuncs = ufuncs or []

    def derive(
        self,
        derivative: Callable | None = None,
        *,
        arg: int = 0,
    ) -> Callable[[Callable], Operation] | Operation:
        """
        Registers the partial *derivative* with respect to the positional argument at index *arg*.
        Can be used as a decorator, either plain (``@op.derive``, first argument) or with arguments
        (``@op.derive(arg=1)``).
        """
        def derive(derivative: Callable) -> Operation:
            self.derivatives[arg] = derivative
            return self

        return derive if derivative is None else derive(derivative)

    @property
    def derivative(self) -> Callable | None:
        return self.derivatives.get(0)

    @property
    def name(self) -> str:
        return self._name

    @property
    def ufuncs(self) -> list[Callable]:
        return self._ufuncs

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.name}' at {hex(id(self))}>"

    def __call__(self, *args, **kwargs) -> ErrorValue:
        # the first instance decides about the type and default uncertainty method of the result
        ref = next((arg for arg in args if isinstance(arg, ErrorValue)), None)
        if ref is None:
            raise TypeError(f"operation '{self.name}' requires at least one ErrorValue argument")
        if any(isinstance(v, ErrorValue) for v in kwargs.values()):
            raise TypeError(f"operation '{self.name}' only propagates positional arguments")

        # all functions are designed to run on raw values (numbers or NumPy arrays)
        values = tuple(map(ensure_value, args))

        # apply to the nominal values
        value = self.function(*values, **kwargs)

        # collect derivative terms of all uncertain arguments, exact ones contribute nothing
        terms = []
        for i, arg in enumerate(args):
            if not isinstance(arg, ErrorValue) or not has_uncertainty(arg.uncertainty):
                continue
            derivative = self.derivatives.get(i)
            if derivative is None:
                raise RuntimeError(
                    f"cannot run operation '{self.name}', no derivative registered for argument {i}",
                )
            terms.append((derivative(*values, **kwargs), arg.uncertainty))

        return ref.copy(value=value, uncertainty=calculate_uncertainty(terms))


class OpsMeta(type):

    def __contains__(cls: type, name: str) -> bool:
        return name in cls._instances  # type: ignore[attr-defined]


class ops(object, metaclass=OpsMeta):
    """
    Uncertainty-aware replacement for the global math (or numpy) module. The purpose of the class
    is to provide operations (e.g. `pow`, `cos`, `sin`, etc.) that automatically propagate the
    uncertainty of :py:class:`ErrorValue` arguments through the partial derivatives of the
    operation. Example:

    .. code-block:: python

        e = ops.pow(ErrorValue(5, 1), 2)
        print(e)  # -> '25.0 ± 10.0'
    """

    # registered operations mapped to their names
    _instances: dict[str, Operation] = {}

    # mapping of ufunc to operation names for faster lookup
    # (operations have a list of actual ufunc callables they handle)
    _ufuncs: dict[str, str] = {}

    @classmethod
    def register(
        cls,
        function: Callable | None = None,
        name: str | None = None,
        ufuncs: str | Sequence[str] | None = None,
    ) -> Callable[[Callable], Operation] | Operation:
        """
        Registers a new math function *function* with *name* and returns an :py:class:`Operation`
        instance. When *name* is *None*, the name of the *function* is used. The returned object is
        used to set the partial derivatives (similar to *property*). Example:

        .. code-block:: python

            @ops.register
            def my_op(x, y):
                return x * 2 + y

            @my_op.derive
            def my_op(x, y):
                return 2

            @my_op.derive(arg=1)
            def my_op(x, y):
                return 1

            e = ops.my_op(ErrorValue(5, 2), ErrorValue(1, 1))
            print(e)  # -> '11 ± 5.0'

        To comply with NumPy's ufuncs (https://numpy.org/neps/nep-0013-ufunc-overrides.html) that
        are dispatched by :py:meth:`ErrorValue.__array_ufunc__`, an operation might register the
        *ufuncs* objects that it handles. When strings, they are interpreted as a name of a NumPy
        function.
        """
        # prepare ufuncs
        _ufuncs: list[Callable] = []
        if ufuncs is not None:
            for u in (ufuncs if isinstance(ufuncs, (list, tuple)) else [ufuncs]):
                if isinstance(u, str):
                    if not HAS_NUMPY:
                        continue
                    u = getattr(np, u)
                _ufuncs.append(u)

        def register(function: Callable) -> Operation:
            op = Operation(function, name=name, ufuncs=_ufuncs)

            # save as class attribute and also in _instances
            cls._instances[op.name] = op
            setattr(cls, op.name, op)

            # add ufuncs to mapping
            for ufunc in op.ufuncs:
                cls._ufuncs[ufunc.__name__] = op.name

            return op

        return register if function is None else register(function)

    @classmethod
    def get_operation(cls, name: str) -> Operation:
        """
        Returns an operation that was previously registered with *name*.
        """
        return cls._instances[name]

    @classmethod
    def op(cls, name: str) -> Operation:
        """
        Shorthand for :py:meth:`get_operation`.
        """
        return cls.get_operation(name)

    @classmethod
    def get_ufunc_operation(cls, ufunc: str | Callable) -> Operation | None:
        """
        Returns an operation that was previously registered to handle a NumPy *ufunc*, which can be
        a string or the function itself. *None* is returned when no operation was found to handle
        the function.
        """
        if callable(ufunc):
            ufunc = ufunc.__name__

        if ufunc not in cls._ufuncs:
            return None

        return cls.get_operation(cls._ufuncs[ufunc])

    @classmethod
    def rebuilt_ufunc_cache(cls) -> None:
        """
        Rebuilds the internal cache of ufuncs.
        """
        cls._ufuncs.clear()
        for name, op in cls._instances.items():
            for ufunc in op.ufuncs:
                cls._ufuncs[ufunc.__name__] = name


#
# pre-registered operations
#

@ops.register(ufuncs="add")
def add(x: InValueType, n: InValueType) -> OutValueType:
    """ add(x, n)
    Addition function.
    """
    return x + n


@add.derive
def add(x: InValueType, n: InValueType) -> float:
    return 1.0


@add.derive(arg=1)
def add(x: InValueType, n: InValueType) -> float:
    return 1.0


@ops.register(ufuncs="subtract")
def sub(x: InValueType, n: InValueType) -> OutValueType:
    """ sub(x, n)
    Subtraction function.
    """
    return x - n


@sub.derive
def sub(x: InValueType, n: InValueType) -> float:
    return 1.0


@sub.derive(arg=1)
def sub(x: InValueType, n: InValueType) -> float:
    return -1.0


@ops.register(ufuncs="multiply")
def mul(x: InValueType, n: InValueType) -> OutValueType:
    """ mul(x, n)
    Multiplication function. The propagated uncertainty ``|n| * dx + |x| * dn`` equals the sum of
    relative uncertainties scaled by the result for non-zero values.
    """
    return x * n


@mul.derive
def mul(x: InValueType, n: InValueType) -> OutValueType:
    return n


@mul.derive(arg=1)
def mul(x: InValueType, n: InValueType) -> OutValueType:
    return x


@ops.register(ufuncs="divide")
def div(x: InValueType, n: InValueType) -> OutValueType:
    """ div(x, n)
    Division function.
    """
    return x / n


@div.derive
def div(x: InValueType, n: InValueType) -> OutValueType:
    return 1.0 / n


@div.derive(arg=1)
def div(x: InValueType, n: InValueType) -> OutValueType:
    return -x / n**2


@ops.register(ufuncs="power")
def pow(x: InValueType, n: InValueType) -> OutValueType:
    """ pow(x, n)
    Power function. When *n* is a bare number, only the uncertainty of *x* is propagated.
    """
    if is_numpy(x) or is_numpy(n):
        return np.power(np.asarray(x, dtype=float), n)
    if x == 0 and n < 0:
        raise ZeroDivisionError(f"zero cannot be raised to a negative power: {n}")
    return math.pow(x, n)


@pow.derive
def pow(x: InValueType, n: InValueType) -> OutValueType:
    return n * pow.function(x, n - 1)


@pow.derive(arg=1)
def pow(x: InValueType, n: InValueType) -> OutValueType:
    return pow.function(x, n) * infer_math(x).log(x)


@ops.register(ufuncs="exp")
def exp(x: InValueType) -> OutValueType:
    """ exp(x)
    Exponential function.
    """
    return infer_math(x).exp(x)


@exp.derive
def exp(x: InValueType) -> OutValueType:
    return exp.function(x)


@ops.register(ufuncs="expm1")
def expm1(x: InValueType) -> OutValueType:
    """ expm1(x)
    Exponential function minus one, precise for small *x*.
    """
    return infer_math(x).expm1(x)


@expm1.derive
def expm1(x: InValueType) -> OutValueType:
    return exp.function(x)


@ops.register(ufuncs="exp2")
def exp2(x: InValueType) -> OutValueType:
    """ exp2(x)
    Exponential function with base 2.
    """
    if is_numpy(x):
        return np.exp2(x)
    return math.pow(2.0, x)


@exp2.derive
def exp2(x: InValueType) -> OutValueType:
    return exp2.function(x) * math.log(2.0)


@ops.register(ufuncs="log")
def log(x: InValueType, base: InValueType | None = None) -> OutValueType:
    """ log(x, base=e)
    Logarithmic function.
    """
    _math = infer_math(x)
    if base is None:
        return _math.log(x)
    return _math.log(x) / _math.log(base)


@log.derive
def log(x: InValueType, base: InValueType | None = None) -> OutValueType:
    if base is None:
        return 1.0 / x
    return 1.0 / (x * infer_math(x).log(base))


@log.derive(arg=1)
def log(x: InValueType, base: InValueType | None = None) -> OutValueType:
    _math = infer_math(base)
    return -_math.log(x) / (base * _math.log(base)**2.0)


@ops.register(ufuncs="log10")
def log10(x: InValueType) -> OutValueType:
    """ log10(x)
    Logarithmic function with base 10.
    """
    return log.function(x, base=10.0)


@log10.derive
def log10(x: InValueType) -> OutValueType:
    return log.derivative(x, base=10.0)


@ops.register(ufuncs="log2")
def log2(x: InValueType) -> OutValueType:
    """ log2(x)
    Logarithmic function with base 2.
    """
    return log.function(x, base=2.0)


@log2.derive
def log2(x: InValueType) -> OutValueType:
    return log.derivative(x, base=2.0)


@ops.register(ufuncs="log1p")
def log1p(x: InValueType) -> OutValueType:
    """ log1p(x)
    Logarithm of ``1 + x``, precise for small *x*.
    """
    return infer_math(x).log1p(x)


@log1p.derive
def log1p(x: InValueType) -> OutValueType:
    return 1.0 / (1.0 + x)


@ops.register
def logn(x: InValueType, n: int) -> OutValueType:
    """ logn(x, n)
    Logarithmic function with an integral base *n*. The result is always a float, also for integer
    values of *x*.
    """
    if isinstance(n, bool) or not isinstance(n, numbers.Integral):
        raise TypeError(f"logn base must be integral, got {n!r}")
    return log.function(x, base=float(n))


@logn.derive
def logn(x: InValueType, n: int) -> OutValueType:
    return log.derivative(x, base=float(n))


@ops.register(ufuncs="sqrt")
def sqrt(x: InValueType) -> OutValueType:
    """ sqrt(x)
    Square root function.
    """
    return infer_math(x).sqrt(x)


@sqrt.derive
def sqrt(x: InValueType) -> OutValueType:
    return 1.0 / (2.0 * infer_math(x).sqrt(x))


@ops.register(ufuncs="cbrt")
def cbrt(x: InValueType) -> OutValueType:
    """ cbrt(x)
    Cube root function, real-valued for negative *x*.
    """
    if is_numpy(x):
        return np.cbrt(x)
    return math.copysign(math.pow(math.fabs(x), 1.0 / 3.0), x)


@cbrt.derive
def cbrt(x: InValueType) -> OutValueType:
    return 1.0 / (3.0 * cbrt.function(x)**2.0)


@ops.register(ufuncs="sin")
def sin(x: InValueType) -> OutValueType:
    """ sin(x)
    Trigonometric sin function.
    """
    return infer_math(x).sin(x)


@sin.derive
def sin(x: InValueType) -> OutValueType:
    return infer_math(x).cos(x)


@ops.register(ufuncs="cos")
def cos(x: InValueType) -> OutValueType:
    """ cos(x)
    Trigonometric cos function.
    """
    return infer_math(x).cos(x)


@cos.derive
def cos(x: InValueType) -> OutValueType:
    return -infer_math(x).sin(x)


@ops.register(ufuncs="tan")
def tan(x: InValueType) -> OutValueType:
    """ tan(x)
    Trigonometric tan function.
    """
    return infer_math(x).tan(x)


@tan.derive
def tan(x: InValueType) -> OutValueType:
    return 1.0 / infer_math(x).cos(x)**2.0


@ops.register(ufuncs="arcsin")
def asin(x: InValueType) -> OutValueType:
    """ asin(x)
    Trigonometric arc sin function.
    """
    _math = infer_math(x)
    if _math is math:
        return _math.asin(x)
    return _math.arcsin(x)


@asin.derive
def asin(x: InValueType) -> OutValueType:
    return 1.0 / infer_math(x).sqrt(1.0 - x**2.0)


@ops.register(ufuncs="arccos")
def acos(x: InValueType) -> OutValueType:
    """ acos(x)
    Trigonometric arc cos function.
    """
    _math = infer_math(x)
    if _math is math:
        return _math.acos(x)
    return _math.arccos(x)


@acos.derive
def acos(x: InValueType) -> OutValueType:
    return -1.0 / infer_math(x).sqrt(1.0 - x**2.0)


@ops.register(ufuncs="arctan")
def atan(x: InValueType) -> OutValueType:
    """ atan(x)
    Trigonometric arc tan function.
    """
    _math = infer_math(x)
    if _math is math:
        return _math.atan(x)
    return _math.arctan(x)


@atan.derive
def atan(x: InValueType) -> OutValueType:
    return 1.0 / (1.0 + x**2.0)


@ops.register
def atan2(y: InValueType, x: InValueType) -> OutValueType:
    """ atan2(y, x)
    Trigonometric arc tan function of the quotient ``y / x``, evaluated as ``atan(y / x)`` in the
    range ``[-pi/2, pi/2]``. The propagated uncertainty is identical to the one of the composition
    of the division and the arc tan function. A zero *x* raises a *ZeroDivisionError* for plain
    numbers.
    """
    return atan.function(y / x)


@atan2.derive
def atan2(y: InValueType, x: InValueType) -> OutValueType:
    return x / (x**2.0 + y**2.0)


@atan2.derive(arg=1)
def atan2(y: InValueType, x: InValueType) -> OutValueType:
    return -y / (x**2.0 + y**2.0)


@ops.register(ufuncs="sinh")
def sinh(x: InValueType) -> OutValueType:
    """ sinh(x)
    Hyperbolic sin function.
    """
    return infer_math(x).sinh(x)


@sinh.derive
def sinh(x: InValueType) -> OutValueType:
    return infer_math(x).cosh(x)


@ops.register(ufuncs="cosh")
def cosh(x: InValueType) -> OutValueType:
    """ cosh(x)
    Hyperbolic cos function.
    """
    return infer_math(x).cosh(x)


@cosh.derive
def cosh(x: InValueType) -> OutValueType:
    return infer_math(x).sinh(x)


@ops.register(ufuncs="tanh")
def tanh(x: InValueType) -> OutValueType:
    """ tanh(x)
    Hyperbolic tan function.
    """
    return infer_math(x).tanh(x)


@tanh.derive
def tanh(x: InValueType) -> OutValueType:
    return 1.0 / infer_math(x).cosh(x)**2.0


@ops.register(ufuncs="arcsinh")
def asinh(x: InValueType) -> OutValueType:
    """ asinh(x)
    Hyperbolic arc sin function.
    """
    _math = infer_math(x)
    if _math is math:
        return _math.asinh(x)
    return _math.arcsinh(x)


@asinh.derive
def asinh(x: InValueType) -> OutValueType:
    return 1.0 / infer_math(x).sqrt(1.0 + x**2.0)


@ops.register(ufuncs="arccosh")
def acosh(x: InValueType) -> OutValueType:
    """ acosh(x)
    Hyperbolic arc cos function.
    """
    _math = infer_math(x)
    if _math is math:
        return _math.acosh(x)
    return _math.arccosh(x)


@acosh.derive
def acosh(x: InValueType) -> OutValueType:
    return 1.0 / infer_math(x).sqrt(x**2.0 - 1.0)


@ops.register(ufuncs="arctanh")
def atanh(x: InValueType) -> OutValueType:
    """ atanh(x)
    Hyperbolic arc tan function.
    """
    _math = infer_math(x)
    if _math is math:
        return _math.atanh(x)
    return _math.arctanh(x)


@atanh.derive
def atanh(x: InValueType) -> OutValueType:
    return 1.0 / (1.0 - x**2.0)


@ops.register(ufuncs="hypot")
def hypot(x: InValueType, y: InValueType) -> OutValueType:
    """ hypot(x, y)
    Euclidean norm ``sqrt(x**2 + y**2)``.
    """
    if is_numpy(x) or is_numpy(y):
        return np.hypot(x, y)
    return math.hypot(x, y)


@hypot.derive
def hypot(x: InValueType, y: InValueType) -> OutValueType:
    return x / hypot.function(x, y)


@hypot.derive(arg=1)
def hypot(x: InValueType, y: InValueType) -> OutValueType:
    return y / hypot.function(x, y)


@ops.register
def erf(x: InValueType) -> OutValueType:
    """ erf(x)
    Gauss error function.
    """
    return infer_special(x).erf(x)


@erf.derive
def erf(x: InValueType) -> OutValueType:
    return 2.0 / math.sqrt(math.pi) * infer_math(x).exp(-x**2.0)


@ops.register
def erfc(x: InValueType) -> OutValueType:
    """ erfc(x)
    Complementary Gauss error function.
    """
    return infer_special(x).erfc(x)


@erfc.derive
def erfc(x: InValueType) -> OutValueType:
    return -erf.derivative(x)


@ops.register
def tgamma(x: InValueType) -> OutValueType:
    """ tgamma(x)
    Gamma function. Propagating uncertainties requires scipy for the digamma function.
    """
    return infer_special(x).gamma(x)


@tgamma.derive
def tgamma(x: InValueType) -> OutValueType:
    return tgamma.function(x) * digamma(x)


@ops.register
def lgamma(x: InValueType) -> OutValueType:
    """ lgamma(x)
    Natural logarithm of the absolute value of the gamma function. Propagating uncertainties
    requires scipy for the digamma function.
    """
    _special = infer_special(x)
    if _special is math:
        return _special.lgamma(x)
    return _special.gammaln(x)


@lgamma.derive
def lgamma(x: InValueType) -> OutValueType:
    return digamma(x)


@ops.register(name="abs", ufuncs="absolute")
def absolute(x: InValueType) -> OutValueType:
    """ absolute(x)
    Absolute value, registered as ``ops.abs``. The uncertainty remains unchanged.
    """
    return abs(x)


@absolute.derive
def absolute(x: InValueType) -> float:
    return 1.0


@ops.register
def fma(x: InValueType, y: InValueType, z: InValueType) -> OutValueType:
    """ fma(x, y, z)
    Multiply-add function ``x * y + z``.
    """
    return x * y + z


@fma.derive
def fma(x: InValueType, y: InValueType, z: InValueType) -> OutValueType:
    return y


@fma.derive(arg=1)
def fma(x: InValueType, y: InValueType, z: InValueType) -> OutValueType:
    return x


@fma.derive(arg=2)
def fma(x: InValueType, y: InValueType, z: InValueType) -> float:
    return 1.0


#
# helper functions
#

def ensure_value(value: ErrorValue | InValueType) -> InValueType:
    """
    Returns *value* again if it is not an instance of :py:class:`ErrorValue`, or returns its
    nominal value.
    """
    return value if not isinstance(value, ErrorValue) else value.value


def is_numpy(x: Any) -> bool:
    """
    Returns *True* when numpy is available on your system and *x* is a numpy array.
    """
    return HAS_NUMPY and isinstance(x, np.ndarray)


def is_ufloat(x: Any) -> bool:
    """
    Returns *True* when the "uncertainties" package is available on your system and *x* is a
    ``ufloat``.
    """
    return HAS_UNCERTAINTIES and isinstance(x, _uncs.core.AffineScalarFunc)


def is_operand(x: Any) -> bool:
    """
    Returns *True* when *x* can be combined with an :py:class:`ErrorValue` by an operator, i.e.,
    when it is an instance itself, a non-boolean real number, a numeric numpy array or a ``ufloat``.
    """
    if isinstance(x, ErrorValue) or is_ufloat(x):
        return True
    if is_numpy(x):
        return x.dtype.kind in "iuf"
    return isinstance(x, numbers.Real) and not isinstance(x, bool)


def parse_ufloat(x: Any) -> tuple[float, float]:
    """
    Takes a ``ufloat`` object *x* from the "uncertainties" package and returns a 2-tuple containing
    its nominal value and standard deviation.
    """
    return x.nominal_value, x.std_dev


def has_uncertainty(unc: UncType) -> bool:
    """
    Returns *True* when the uncertainty *unc*, or any of its elements in case of an array, is not
    zero.
    """
    if is_numpy(unc):
        return bool(np.any(unc != 0))
    return unc != 0


def infer_math(x: Any) -> ModuleType:
    """
    Returns the numpy module when :py:func:`is_numpy` for *x* is *True*, and the math module
    otherwise.
    """
    return np if is_numpy(x) else math


def infer_special(x: Any) -> ModuleType:
    """
    Returns the scipy.special module when :py:func:`is_numpy` for *x* is *True*, and the math module
    otherwise. A *RuntimeError* is raised when scipy is needed but not installed.
    """
    if not is_numpy(x):
        return math
    return require_scipy()


def require_scipy() -> ModuleType:
    """
    Returns the scipy.special module, or raises a *RuntimeError* when scipy is not installed.
    """
    if not HAS_SCIPY:
        raise RuntimeError(
            "special functions on arrays and the propagation through gamma functions require " +
            "scipy (https://scipy.org) to be installed on your system",
        )
    return _special


def digamma(x: InValueType) -> OutValueType:
    """
    Returns the digamma function, the logarithmic derivative of the gamma function, evaluated at
    *x*.
    """
    psi = require_scipy().digamma(x)
    return psi if is_numpy(x) else float(psi)


def calculate_uncertainty(terms: Sequence[TermType]) -> UncType:
    """
    Calculates the uncertainty of a quantity that depends on multiple independent *terms*. Each
    term is expected to be a 2-tuple containing the partial derivative and the uncertainty of the
    term. Following linear propagation, absolute contributions are summed up. Example:

    .. code-block:: python

        calculate_uncertainty([(3, 0.5), (-4, 0.5)])
        # -> 3.5

    Array elements whose uncertainty is zero do not contribute, even if the derivative is not
    finite.
    """
    unc: UncType = 0.0
    for derivative, uncertainty in terms:
        term = abs(derivative) * uncertainty
        if is_numpy(term):
            term = np.where(uncertainty != 0, term, 0.0)
        unc = unc + term

    return unc


def half_last_digit(x: InValueType) -> UncType:
    """
    Returns half a unit of the last significant decimal digit of a number *x*. For integral numbers,
    trailing zeros are not significant. *x* might also be a numpy array. Example:

    .. code-block:: python

        half_last_digit(1200)  # -> 50.0
        half_last_digit(7)     # -> 0.5
        half_last_digit(0.03)  # -> 0.005
        half_last_digit(2.25)  # -> 0.005

    The digits of floats are taken from their shortest string representation so that artifacts of
    the binary representation do not count as significant digits.
    """
    if is_numpy(x):
        return np.vectorize(half_last_digit, otypes=[float])(x)

    if isinstance(x, numbers.Integral):
        d = decimal.Decimal(int(x))
    elif isinstance(x, float) or type(x).__module__ == "numpy":
        d = decimal.Decimal(str(x))
    else:
        d = decimal.Decimal(str(float(x)))

    if not d.is_finite():
        raise ValueError(f"cannot infer last digit of non-finite number: {x}")

    # strip trailing zeros, the exponent then refers to the last significant digit
    d = d.normalize(decimal.Context(prec=max(len(d.as_tuple().digits), 1)))
    mag = d.as_tuple().exponent

    return float(decimal.Decimal(5).scaleb(mag - 1))


def split_value(val: float) -> tuple[float, int]:
    """
    Splits a value *val* into its significand and decimal exponent (magnitude) and returns them in a
    2-tuple. Example:

    .. code-block:: python

        split_value(1)     # -> (1.0, 0)
        split_value(0.123) # -> (1.23, -1)
        split_value(-42.5) # -> (-4.25, 1)

    The significand will be a float while magnitude will be an integer. *val* can be reconstructed
    via ``significand * 10**magnitude``.
    """
    val = ensure_value(val)

    # handle 0 separately
    if val == 0:
        return (0.0, 0)

    mag = int(math.floor(math.log10(abs(val))))
    sig = float(val) / (10.0**mag)

    return (sig, mag)


si_prefixes = dict(zip(
    range(-18, 18 + 1, 3),
    ["a", "f", "p", "n", r"\mu", "m", "", "k", "M", "G", "T", "P", "E"],
))


def infer_si_prefix(f: float) -> tuple[str, int]:
    """
    Infers the SI prefix of a value *f* and returns the string label and decimal magnitude in a
    2-tuple. Values beyond the known prefixes use the largest (smallest) one. Example:

    .. code-block:: python

        infer_si_prefix(1)     # -> ("", 0)
        infer_si_prefix(25)    # -> ("", 0)
        infer_si_prefix(4320)  # -> ("k", 3)
    """
    f = ensure_value(f)
    if f == 0:
        return "", 0

    mag = 3 * int(math.log10(abs(float(f))) // 3)
    mag = max(min(mag, 18), -18)
    return si_prefixes[mag], mag


#: Dictionary containing formatting styles for ``"plain"``, ``"fancy"``, ``"latex"`` and ``"root"``
#: styles which are used in :py:meth:`ErrorValue.str`. Each style dictionary contains 4 fields:
#: ``"space"``, ``"unit"``, ``"sym"`` and ``"sci"``. As an example, the fancy style is configured as
#:
#: .. code-block:: python
#:
#:     {
#:         "space": " ",
#:         "unit": " {unit}",
#:         "sym": "± {unc}",
#:         "sci": "x 1E{mag}",
#:     }
style_dict = {
    "plain": {
        "space": " ",
        "unit": " {unit}",
        "sym": "+- {unc}",
        "sci": "x 1E{mag}",
    },
    "fancy": {
        "space": " ",
        "unit": " {unit}",
        "sym": "± {unc}",
        "sci": "x 1E{mag}",
    },
    "latex": {
        "space": r" ",
        "unit": r"\,{unit}",
        "sym": r"\pm {unc}",
        "sci": r"\times 10^{{{mag}}}",
    },
    "root": {
        "space": " ",
        "unit": " {unit}",
        "sym": "#pm {unc}",
        "sci": "#times 10^{{{mag}}}",
    },
}
