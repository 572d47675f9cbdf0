from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("env_transport")  # Matches the name in pyproject.toml
except PackageNotFoundError:
    # package is not installed
    __version__ = "0.0.0-dev"

from .config import (  # noqa: E402
    AdvectionConfig,
    SplittingConfig,
    TransportConfig,
    load_transport_config,
    save_transport_config,
)
from .factory import apply_logging_config, create_advection_operator, create_simulator  # noqa: E402
from .geometry import (  # noqa: E402
    BCArray,
    BCType,
    BoundaryCondition,
    DirichletBC,
    PeriodicBC,
    ZeroGradBC,
    ZeroGradBCArray,
    create_bc,
)
from .lagrangian import Puff, PuffTrajectory  # noqa: E402
from .operators import (  # noqa: E402
    AdvectionOperator,
    AxisAdvection,
    AxisReorder,
    get_stencil,
    l94_stencil,
    orderby_op,
    ppm_stencil,
    register_stencil,
    stencil_size,
    upwind1_stencil,
    upwind2_stencil,
)
from .simulation import SplittingSimulator, get_integrator  # noqa: E402
from .utils import (  # noqa: E402
    BoundaryConditionError,
    ConfigurationError,
    IntegrationError,
    ShapeMismatchError,
    StencilError,
    TransportError,
    configure_logging,
    get_logger,
)

__all__ = [
    "AdvectionConfig",
    "AdvectionOperator",
    "AxisAdvection",
    "AxisReorder",
    "BCArray",
    "BCType",
    "BoundaryCondition",
    "BoundaryConditionError",
    "ConfigurationError",
    "DirichletBC",
    "IntegrationError",
    "PeriodicBC",
    "Puff",
    "PuffTrajectory",
    "ShapeMismatchError",
    "SplittingConfig",
    "SplittingSimulator",
    "StencilError",
    "TransportConfig",
    "TransportError",
    "ZeroGradBC",
    "ZeroGradBCArray",
    "__version__",
    "apply_logging_config",
    "configure_logging",
    "create_advection_operator",
    "create_bc",
    "create_simulator",
    "get_integrator",
    "get_logger",
    "get_stencil",
    "l94_stencil",
    "load_transport_config",
    "orderby_op",
    "ppm_stencil",
    "register_stencil",
    "save_transport_config",
    "stencil_size",
    "upwind1_stencil",
    "upwind2_stencil",
]
