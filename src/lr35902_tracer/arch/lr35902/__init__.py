# src/lr35902_tracer/arch/lr35902/__init__.py
"""
LR35902 Architecture Package
"""
from .cpu import Lr35902Cpu
from .state import Lr35902CpuState, RegisterFile, FlagRegister
