from .coordinator import EnvironmentFixture
from .declarative import Container, DeclarativeEnvironment, close_environment, create_environment
