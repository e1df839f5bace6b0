# coding: utf-8


__all__ = ["OpsTestCase"]


import math
import unittest

from errval import (
    ErrorValue, Operation, ops, HAS_NUMPY, HAS_SCIPY, calculate_uncertainty,
)
import errval

if HAS_NUMPY:
    import numpy as np


def if_numpy(func):
    return func if HAS_NUMPY else (lambda self: None)


def if_scipy(func):
    return func if HAS_SCIPY else (lambda self: None)


def unregister(name):
    ops._instances.pop(name, None)
    if hasattr(ops, name):
        delattr(ops, name)
    ops.rebuilt_ufunc_cache()


class OpsTestCase(unittest.TestCase):

    def assertPropagated(self, op, x, u, value, derivative, places=7):
        e = op(ErrorValue(x, u))
        self.assertAlmostEqual(e.value, value, places=places)
        self.assertAlmostEqual(e.uncertainty, abs(derivative) * u, places=places)

    def test_registry(self):
        for name in ["add", "sub", "mul", "div", "pow", "exp", "log", "sqrt", "cbrt", "sin",
                "atan2", "hypot", "erf", "tgamma", "lgamma", "abs", "fma"]:
            self.assertIn(name, ops)
            self.assertIsInstance(ops.get_operation(name), Operation)

        self.assertNotIn("foo", ops)
        self.assertIs(ops.op("sin"), ops.sin)
        self.assertIs(ops.abs, errval.absolute)
        self.assertIs(errval.sin, ops.sin)

        with self.assertRaises(KeyError):
            ops.get_operation("foo")

    def test_register(self):
        self.addCleanup(unregister, "scale3")
        self.addCleanup(unregister, "lin2")

        @ops.register
        def scale3(x):
            """ scale3(x)
            Triples a value.
            """
            return x * 3

        self.assertIsInstance(scale3, Operation)
        self.assertEqual(scale3.name, "scale3")
        self.assertIn("scale3", ops)

        # missing derivative
        with self.assertRaises(RuntimeError):
            ops.scale3(ErrorValue(1.0, 0.5))

        # exact values need no derivative
        self.assertEqual(ops.scale3(ErrorValue(2.0)).value, 6.0)

        @scale3.derive
        def scale3(x):
            return 3.0

        e = ops.scale3(ErrorValue(2.0, 0.5))
        self.assertEqual((e.value, e.uncertainty), (6.0, 1.5))

        @ops.register(name="lin2")
        def some_function(x, y):
            return x * 2 + y

        @some_function.derive
        def some_function(x, y):
            return 2

        @some_function.derive(arg=1)
        def some_function(x, y):
            return 1

        e = ops.lin2(ErrorValue(5, 2), ErrorValue(1, 1))
        self.assertEqual(e.value, 11)
        self.assertEqual(e.uncertainty, 5.0)
        self.assertIs(some_function.derivative, some_function.derivatives[0])

    def test_operation_arguments(self):
        with self.assertRaises(TypeError):
            ops.sin(1.0)

        with self.assertRaises(TypeError):
            ops.log(ErrorValue(2.0), base=ErrorValue(3.0, 0.1))

        # the first instance decides about the default method
        a = ErrorValue(1.0, 0.1)
        b = ErrorValue(2.0, 0.1, default_method="half_last_digit")
        self.assertEqual(ops.add(a, b).get_default_method(), "zero")
        self.assertEqual(ops.add(1.0, b).get_default_method(), "half_last_digit")

        # bare arguments are never promoted
        e = ops.add(1200, a)
        self.assertAlmostEqual(e.uncertainty, 0.1)

    def test_calculate_uncertainty(self):
        self.assertEqual(calculate_uncertainty([]), 0.0)
        self.assertEqual(calculate_uncertainty([(3, 0.5), (-4, 0.5)]), 3.5)

    @if_numpy
    def test_calculate_uncertainty_numpy(self):
        unc = calculate_uncertainty([(np.array([np.inf, 2.0]), np.array([0.0, 0.5]))])
        self.assertEqual(list(unc), [0.0, 1.0])

    def test_exp_log(self):
        self.assertPropagated(ops.exp, 1.5, 0.1, math.exp(1.5), math.exp(1.5))
        self.assertPropagated(ops.expm1, 1e-3, 0.1, math.expm1(1e-3), math.exp(1e-3))
        self.assertPropagated(ops.exp2, 3.0, 0.1, 8.0, 8.0 * math.log(2.0))
        self.assertPropagated(ops.log, 4.0, 0.2, math.log(4.0), 0.25)
        self.assertPropagated(ops.log10, 100.0, 0.5, 2.0, 1.0 / (100.0 * math.log(10.0)))
        self.assertPropagated(ops.log2, 8.0, 0.5, 3.0, 1.0 / (8.0 * math.log(2.0)))
        self.assertPropagated(ops.log1p, 0.5, 0.1, math.log1p(0.5), 1.0 / 1.5)

        e = ops.log(ErrorValue(8.0, 0.5), 2.0)
        self.assertAlmostEqual(e.value, 3.0)
        self.assertAlmostEqual(e.uncertainty, 0.5 / (8.0 * math.log(2.0)))

        e = ops.log(ErrorValue(8.0), ErrorValue(2.0, 0.1))
        self.assertAlmostEqual(e.value, 3.0)
        self.assertAlmostEqual(e.uncertainty, math.log(8.0) / (2.0 * math.log(2.0)**2) * 0.1)

        with self.assertRaises(ValueError):
            ops.log(ErrorValue(-1.0, 0.1))

        with self.assertRaises(ValueError):
            ops.log(ErrorValue(0.0, 0.1))

    def test_logn(self):
        e = ops.logn(ErrorValue(9, 0.3), 3)
        self.assertIsInstance(e.value, float)
        self.assertAlmostEqual(e.value, 2.0)
        self.assertAlmostEqual(e.uncertainty, 0.3 / (9 * math.log(3)))

        with self.assertRaises(TypeError):
            ops.logn(ErrorValue(9.0, 0.3), 2.5)

        with self.assertRaises(TypeError):
            ops.logn(ErrorValue(9.0, 0.3), True)

    def test_pow(self):
        e = ops.pow(ErrorValue(5, 1), 2)
        self.assertEqual(e.value, 25.0)
        self.assertEqual(e.uncertainty, 10.0)

        e = ops.pow(ErrorValue(2.0, 0.1), ErrorValue(0.5, 0.2))
        self.assertAlmostEqual(e.value, math.sqrt(2.0))
        self.assertAlmostEqual(
            e.uncertainty,
            0.5 * 2.0**-0.5 * 0.1 + math.sqrt(2.0) * math.log(2.0) * 0.2,
        )

    def test_roots(self):
        self.assertPropagated(ops.sqrt, 16.0, 0.8, 4.0, 1.0 / 8.0)
        self.assertPropagated(ops.cbrt, 27.0, 0.9, 3.0, 1.0 / 27.0)
        self.assertPropagated(ops.cbrt, -8.0, 0.6, -2.0, 1.0 / 12.0)

        with self.assertRaises(ValueError):
            ops.sqrt(ErrorValue(-1.0, 0.1))

        # infinite slope at zero
        with self.assertRaises(ZeroDivisionError):
            ops.sqrt(ErrorValue(0.0, 0.1))
        with self.assertRaises(ZeroDivisionError):
            ErrorValue(0.0, 0.1) ** 0.5
        with self.assertRaises(ZeroDivisionError):
            ErrorValue(0.0) ** -1
        self.assertEqual(ops.sqrt(ErrorValue(0.0)).value, 0.0)

    def test_trigonometric(self):
        x = 0.7
        self.assertPropagated(ops.sin, x, 0.1, math.sin(x), math.cos(x))
        self.assertPropagated(ops.cos, x, 0.1, math.cos(x), math.sin(x))
        self.assertPropagated(ops.tan, x, 0.1, math.tan(x), 1.0 / math.cos(x)**2)
        self.assertPropagated(ops.asin, 0.5, 0.1, math.asin(0.5), 1.0 / math.sqrt(0.75))
        self.assertPropagated(ops.acos, 0.5, 0.1, math.acos(0.5), 1.0 / math.sqrt(0.75))
        self.assertPropagated(ops.atan, 2.0, 0.1, math.atan(2.0), 0.2)

        with self.assertRaises(ValueError):
            ops.asin(ErrorValue(1.5, 0.1))

    def test_sin_cos_identity(self):
        for x in [-2.0, 0.0, 0.3, 1.0, 4.5]:
            e = ErrorValue(x, 0.01)
            s, c = ops.sin(e), ops.cos(e)
            self.assertAlmostEqual(s.value**2 + c.value**2, 1.0)

    def test_atan2(self):
        # second quadrant, evaluated as atan(y / x)
        y, x = ErrorValue(1.0, 0.1), ErrorValue(-1.0, 0.2)
        e = ops.atan2(y, x)
        self.assertAlmostEqual(e.value, -0.25 * math.pi)
        self.assertEqual(e.value, ops.atan(y / x).value)
        self.assertAlmostEqual(e.uncertainty, 0.5 * 0.1 + 0.5 * 0.2)

        # same uncertainty as the composition of division and atan
        y, x = ErrorValue(2.0, 0.1), ErrorValue(3.0, 0.2)
        self.assertAlmostEqual(ops.atan2(y, x).uncertainty, ops.atan(y / x).uncertainty)
        self.assertAlmostEqual(ops.atan2(y, x).value, ops.atan(y / x).value)

        with self.assertRaises(ZeroDivisionError):
            ops.atan2(ErrorValue(1.0, 0.1), ErrorValue(0.0, 0.1))

    def test_hyperbolic(self):
        x = 0.4
        self.assertPropagated(ops.sinh, x, 0.1, math.sinh(x), math.cosh(x))
        self.assertPropagated(ops.cosh, x, 0.1, math.cosh(x), math.sinh(x))
        self.assertPropagated(ops.tanh, x, 0.1, math.tanh(x), 1.0 / math.cosh(x)**2)
        self.assertPropagated(ops.asinh, 2.0, 0.1, math.asinh(2.0), 1.0 / math.sqrt(5.0))
        self.assertPropagated(ops.acosh, 2.0, 0.1, math.acosh(2.0), 1.0 / math.sqrt(3.0))
        self.assertPropagated(ops.atanh, 0.5, 0.1, math.atanh(0.5), 1.0 / 0.75)

    def test_hypot(self):
        e = ops.hypot(ErrorValue(3.0, 0.1), ErrorValue(4.0, 0.2))
        self.assertAlmostEqual(e.value, 5.0)
        self.assertAlmostEqual(e.uncertainty, 0.6 * 0.1 + 0.8 * 0.2)

    def test_erf(self):
        d = 2.0 / math.sqrt(math.pi) * math.exp(-0.25)
        self.assertPropagated(ops.erf, 0.5, 0.1, math.erf(0.5), d)
        self.assertPropagated(ops.erfc, 0.5, 0.1, math.erfc(0.5), d)

    @if_scipy
    def test_gamma(self):
        from scipy.special import digamma

        self.assertPropagated(ops.tgamma, 4.5, 0.1, math.gamma(4.5), math.gamma(4.5) * digamma(4.5))
        self.assertPropagated(ops.lgamma, 4.5, 0.1, math.lgamma(4.5), digamma(4.5))

        # at x = 5, gamma(x) = 24 and digamma(x) = 25 / 12 - euler_gamma
        e = ops.tgamma(ErrorValue(5.0, 0.01))
        self.assertAlmostEqual(e.value, 24.0)
        self.assertAlmostEqual(e.uncertainty, 24.0 * (25.0 / 12.0 - 0.5772156649015329) * 0.01)

        with self.assertRaises(ValueError):
            ops.tgamma(ErrorValue(0.0, 0.1))

    def test_gamma_exact(self):
        # no derivative needed without uncertainty
        self.assertAlmostEqual(ops.tgamma(ErrorValue(5.0)).value, 24.0)
        self.assertAlmostEqual(ops.lgamma(ErrorValue(5.0)).value, math.log(24.0))

    def test_abs_fma(self):
        e = ops.abs(ErrorValue(-2.5, 0.3))
        self.assertEqual((e.value, e.uncertainty), (2.5, 0.3))

        e = ops.fma(ErrorValue(2.0, 0.1), ErrorValue(3.0, 0.2), ErrorValue(1.0, 0.05))
        self.assertAlmostEqual(e.value, 7.0)
        self.assertAlmostEqual(e.uncertainty, 3.0 * 0.1 + 2.0 * 0.2 + 0.05)

        e = ops.fma(ErrorValue(2.0, 0.1), 3.0, 1.0)
        self.assertAlmostEqual(e.value, 7.0)
        self.assertAlmostEqual(e.uncertainty, 0.3)

    @if_numpy
    def test_ufuncs(self):
        a = ErrorValue(np.array([0.5, 1.0]), 0.1)

        e = np.sin(a)
        self.assertIsInstance(e, ErrorValue)
        self.assertTrue(np.allclose(e.value, np.sin([0.5, 1.0])))
        self.assertTrue(np.allclose(e.uncertainty, np.cos([0.5, 1.0]) * 0.1))

        e = np.arcsinh(a)
        self.assertTrue(np.allclose(e.uncertainty, 0.1 / np.sqrt(1.0 + np.array([0.5, 1.0])**2)))

        e = np.sqrt(ErrorValue(16.0, 0.8))
        self.assertAlmostEqual(e.value, 4.0)
        self.assertAlmostEqual(e.uncertainty, 0.1)

        e = np.power(a, 2)
        self.assertTrue(np.allclose(e.value, [0.25, 1.0]))
        self.assertTrue(np.allclose(e.uncertainty, [0.1, 0.2]))

        e = np.abs(ErrorValue(np.array([-1.0, 2.0]), 0.5))
        self.assertTrue(np.allclose(e.value, [1.0, 2.0]))

        self.assertIs(ops.get_ufunc_operation(np.arctan), ops.atan)
        self.assertIsNone(ops.get_ufunc_operation(np.arctan2))
        self.assertIs(ops.get_ufunc_operation("absolute"), ops.abs)
        self.assertIsNone(ops.get_ufunc_operation(np.floor))

        with self.assertRaises(TypeError):
            np.floor(a)

    @if_numpy
    def test_ufunc_out(self):
        a = ErrorValue(np.array([1.0, 4.0]), 0.2)
        out = ErrorValue(np.zeros(2))

        ret = np.sqrt(a, out=out)
        self.assertIs(ret, out)
        self.assertTrue(np.allclose(out.value, [1.0, 2.0]))
        self.assertTrue(np.allclose(out.uncertainty, [0.1, 0.05]))

        a = ErrorValue(2.0, 0.1)
        np.multiply(a, 3.0, out=(a,))
        self.assertAlmostEqual(a.value, 6.0)
        self.assertAlmostEqual(a.uncertainty, 0.3)

    @if_numpy
    def test_ufunc_cache(self):
        self.addCleanup(unregister, "rint_value")

        @ops.register(ufuncs="rint")
        def rint_value(x):
            return np.rint(x)

        @rint_value.derive
        def rint_value(x):
            return 1.0

        self.assertIs(ops.get_ufunc_operation("rint"), rint_value)

        ops._ufuncs.clear()
        self.assertIsNone(ops.get_ufunc_operation("rint"))

        ops.rebuilt_ufunc_cache()
        self.assertIs(ops.get_ufunc_operation("rint"), rint_value)

    @if_numpy
    def test_numpy_domain(self):
        with np.errstate(invalid="ignore"):
            e = ops.log(ErrorValue(np.array([-1.0, 1.0]), 0.1))
        self.assertTrue(np.isnan(e.value[0]))
        self.assertAlmostEqual(e.value[1], 0.0)

        # exact elements do not contribute, even with infinite slope
        with np.errstate(divide="ignore", invalid="ignore"):
            e = ops.sqrt(ErrorValue(np.array([0.0, 4.0]), np.array([0.0, 0.4])))
        self.assertEqual(list(e.uncertainty), [0.0, 0.1])

    @if_numpy
    @if_scipy
    def test_special_numpy(self):
        from scipy.special import erf, gamma, digamma

        x = np.array([0.5, 1.5])
        e = ops.erf(ErrorValue(x, 0.1))
        self.assertTrue(np.allclose(e.value, erf(x)))
        self.assertTrue(np.allclose(e.uncertainty, 0.2 / np.sqrt(np.pi) * np.exp(-x**2)))

        e = ops.tgamma(ErrorValue(x, 0.1))
        self.assertTrue(np.allclose(e.value, gamma(x)))
        self.assertTrue(np.allclose(e.uncertainty, np.abs(gamma(x) * digamma(x)) * 0.1))

        e = ops.lgamma(ErrorValue(x, 0.1))
        self.assertTrue(np.allclose(e.uncertainty, np.abs(digamma(x)) * 0.1))
