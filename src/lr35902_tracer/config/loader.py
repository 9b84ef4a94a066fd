import yaml
from typing import Dict, Any

from lr35902_tracer.common.errors import ConfigError
from lr35902_tracer.common.types import IllegalOpcodePolicy
from .models import SystemConfig, MemoryRegion, CpuInitialState

class ConfigLoader:
    def load_from_file(self, path: str) -> SystemConfig:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        return self.parse(data or {})

    # @intent:responsibility YAMLから読み込んだ辞書をSystemConfigに変換します。
    def parse(self, data: Dict[str, Any]) -> SystemConfig:
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping")

        arch = str(data.get("architecture", "LR35902")).upper()
        if arch != "LR35902":
            raise ConfigError(f"Unsupported architecture: {arch}")

        # Parse Memory Map
        memory_map = []
        regions = data.get("memory_map") or []
        if not isinstance(regions, list):
            raise ConfigError("memory_map must be a list of regions")
        for region_data in regions:
            if not isinstance(region_data, dict):
                raise ConfigError(f"Memory region must be a mapping: {region_data!r}")
            start = self._parse_int(region_data.get("start"))
            end = self._parse_int(region_data.get("end"))
            if not 0 <= start <= end <= 0xFFFF:
                raise ConfigError(f"Invalid memory region {start:#x}-{end:#x}")
            memory_map.append(MemoryRegion(
                start=start,
                end=end,
                type=str(region_data.get("type", "RAM")).upper(),
                label=region_data.get("label", ""),
                initial_value=self._parse_int(region_data.get("initial_value", 0)) & 0xFF,
            ))

        # Parse Initial State
        initial_state_data = data.get("initial_state") or {}
        if not isinstance(initial_state_data, dict):
            raise ConfigError("initial_state must be a mapping")
        registers_data = initial_state_data.get("registers") or {}
        if not isinstance(registers_data, dict):
            raise ConfigError("initial_state.registers must be a mapping")
        registers = {
            str(name).lower(): self._parse_int(value)
            for name, value in registers_data.items()
        }
        initial_state = CpuInitialState(
            pc=self._parse_optional_int(initial_state_data.get("pc")),
            sp=self._parse_optional_int(initial_state_data.get("sp")),
            ime=bool(initial_state_data.get("ime", False)),
            registers=registers,
        )

        policy_name = str(data.get("illegal_opcode", IllegalOpcodePolicy.RAISE.value)).lower()
        try:
            policy = IllegalOpcodePolicy(policy_name)
        except ValueError as e:
            raise ConfigError(f"Unknown illegal_opcode policy: {policy_name}") from e

        return SystemConfig(
            architecture=arch,
            memory_map=memory_map,
            initial_state=initial_state,
            illegal_opcode=policy,
        )

    def _parse_optional_int(self, value: Any):
        if value is None:
            return None
        return self._parse_int(value)

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            try:
                if text.startswith("0x"):
                    return int(text, 16)
                if text.startswith("$"):
                    return int(text[1:], 16)
                return int(text)
            except ValueError as e:
                raise ConfigError(f"Invalid integer format: {value}") from e
        raise ConfigError(f"Invalid integer format: {value}")
