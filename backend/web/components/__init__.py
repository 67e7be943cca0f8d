# School ERP component system
# Pure Python components for server-rendered HTML

from .base import Component
from .layout import Layout
from .navigation import Navigation
from .login_form import LoginForm
from .feature_matrix import CenterFeatureMatrix, TeacherFeatureList, TeacherTable

__all__ = [
    "Component",
    "Layout",
    "Navigation",
    "LoginForm",
    "CenterFeatureMatrix",
    "TeacherFeatureList",
    "TeacherTable",
]
