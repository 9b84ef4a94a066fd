import logging
from typing import Tuple

from lr35902_tracer.transport.bus import Bus, RAM, ROM
from lr35902_tracer.arch.lr35902.cpu import Lr35902Cpu
from lr35902_tracer.common.errors import ConfigError
from .models import SystemConfig, CpuInitialState

logger = logging.getLogger(__name__)

# @intent:responsibility システム構成（Config）に基づいて、Bus、Device、CPUを生成・接続し、初期状態を適用します。
class SystemBuilder:
    def build_system(self, config: SystemConfig) -> Tuple[Lr35902Cpu, Bus]:
        bus = Bus()

        for region in config.memory_map:
            size = region.end - region.start + 1
            if region.type == "RAM":
                device = RAM(size, region.initial_value)
            elif region.type == "ROM":
                device = ROM(size, region.initial_value)
            else:
                logger.warning(
                    "Unknown device type '%s' for range %04X-%04X, defaulting to RAM",
                    region.type, region.start, region.end
                )
                device = RAM(size, region.initial_value)
            bus.register_device(region.start, region.end, device)

        if config.architecture != "LR35902":
            raise ConfigError(f"Unsupported architecture: {config.architecture}")
        cpu = Lr35902Cpu(bus)

        # 初期状態の適用
        self.apply_initial_state(cpu, config.initial_state)

        return cpu, bus

    # @intent:responsibility Configで定義された初期状態をCPUに適用します。
    def apply_initial_state(self, cpu: Lr35902Cpu, config_state: CpuInitialState) -> None:
        """
        CPUをリセットし（ブートROM終了時の値）、Configで指定された値だけを上書きします。
        """
        cpu.reset()
        state = cpu.get_state()

        if config_state.pc is not None:
            state.pc = config_state.pc & 0xFFFF
        if config_state.sp is not None:
            state.sp = config_state.sp & 0xFFFF
        state.ime = config_state.ime

        for reg_name, value in config_state.registers.items():
            try:
                state.registers.set(reg_name, value)
            except KeyError as e:
                raise ConfigError(f"Unknown register in initial_state: {reg_name}") from e
