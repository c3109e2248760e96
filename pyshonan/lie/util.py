import casadi as ca

eps = 1e-7  # to avoid divide by zero

x = ca.SX.sym("x")

# sin(x)/x
C1 = ca.Function(
    "a",
    [x],
    [ca.if_else(ca.fabs(x) < eps, 1 - x**2 / 6 + x**4 / 120, ca.sin(x) / x)],
)

# (1 - cos(x))/x^2
C2 = ca.Function(
    "b",
    [x],
    [
        ca.if_else(
            ca.fabs(x) < eps,
            0.5 - x**2 / 24 + x**4 / 720,
            (1 - ca.cos(x)) / x**2,
        )
    ],
)

series_dict = {
    "sin(x)/x": C1,
    "(1 - cos(x))/x^2": C2,
}

# delete temp variable used to create functions
del x


def to_casadi(a):
    """
    Wrap numeric input as a casadi DM, symbolic input is returned as is.
    """
    if isinstance(a, (ca.SX, ca.MX, ca.DM)):
        return a
    return ca.DM(a)
