# retro_z80_core/core/cpu.py
"""
Core Layer (抽象CPU)

このモジュールは、CPUの基本的な状態管理と命令サイクルの駆動に関する抽象化を提供します。
具体的な命令の振る舞いはInstruction Layerに移譲されます。
"""
from abc import ABC, abstractmethod
from typing import Dict

from retro_z80_core.transport.memory import Memory, DEFAULT_MEMORY_SIZE
from retro_z80_core.core.operation import Operation
from retro_z80_core.core.state import CpuState

# @intent:responsibility 抽象CPUの基本機能とインターフェースを定義します。
class AbstractCpu(ABC):
    """
    全てのCPUエミュレーションの基底となる抽象クラス。
    メモリの所有、基本的な状態管理、命令サイクルの抽象化を提供します。
    """
    # @intent:responsibility CPUの状態と専有メモリを初期化します。
    # @intent:pre-condition `memory_size`は正の整数である必要があります（Memoryが検証します）。
    def __init__(self, memory_size: int = DEFAULT_MEMORY_SIZE):
        self._memory = Memory(memory_size)
        self._state: CpuState = self._create_initial_state()
        # @intent:rationale Stateオブジェクトの直接操作を避けるため、protectedな命名規則を採用。
        #                  外部からのアクセスは`get_state()`メソッドを介して行う。

    # @intent:responsibility 初期状態のCpuStateオブジェクトを生成します。
    @abstractmethod
    def _create_initial_state(self) -> CpuState:
        """
        CPUの初期状態を生成して返します。
        具体的なCPUアーキテクチャはこのメソッドを実装し、
        そのアーキテクチャに特化したCpuStateのサブクラスを返すことができます。
        """
        pass

    # @intent:responsibility CPUをリセットし、初期状態に戻します。メモリの内容は保持されます。
    def reset(self) -> None:
        """
        レジスタファイルを初期状態で作り直します。停止状態もここでのみ解除されます。
        """
        self._state = self._create_initial_state()

    # @intent:responsibility 現在のCPUの状態を返します。
    def get_state(self) -> CpuState:
        return self._state

    # @intent:responsibility CPUが専有するメモリを返します。
    def get_memory(self) -> Memory:
        return self._memory

    # @intent:responsibility メモリから次の命令（オペコード）をフェッチします。
    @abstractmethod
    def _fetch(self) -> int:
        """
        現在のPCからオペコードを読み出して返します。PCはこの時点では更新しません。
        """
        pass

    # @intent:responsibility フェッチしたオペコードを解析し、Operationオブジェクトに変換します。
    @abstractmethod
    def _decode(self, opcode: int) -> Operation:
        pass

    # @intent:responsibility デコードされた命令を実行し、CPUの状態を更新します。
    @abstractmethod
    def _execute(self, operation: Operation) -> None:
        pass

    # @intent:responsibility CPUを1命令サイクル進めます。
    # @intent:rationale Template Methodパターンを採用し、共通の実行フロー（HALT判定→フェッチ→デコード→PC更新→実行）を定義します。
    def step(self) -> None:
        """
        CPUを1命令進めます。停止状態ではフェッチもPC更新も行わず、何も変更しません。
        """
        # 1. HALT判定
        if self._state.halted:
            return

        # 2. フェッチ
        opcode = self._fetch()

        # 3. デコード
        operation = self._decode(opcode)

        # 4. PC更新 (Hook)
        # デコード後、実行前にPCを命令長分進める。分岐命令は実行時にPCを上書きする
        self._update_pc(operation)

        # 5. 実行
        self._execute(operation)

    # @intent:responsibility 命令実行前にPCを更新します。
    def _update_pc(self, operation: Operation) -> None:
        self._state.pc = (self._state.pc + operation.length) & 0xFFFF

    # @intent:responsibility 停止するか指定回数に達するまで命令を実行し、実行した命令数を返します。
    def run(self, max_steps: int) -> int:
        executed = 0
        while executed < max_steps and not self._state.halted:
            self.step()
            executed += 1
        return executed

    @abstractmethod
    def get_register_map(self) -> Dict[str, int]:
        """
        現在のレジスタ値を辞書形式で返す。
        ホストがCPUの内部構造を知らなくても値を表示できるようにするために使用される。
        """
        pass

    @abstractmethod
    def get_flag_state(self) -> Dict[str, bool]:
        """
        現在のフラグ（ステータスレジスタ）の各ビットの状態を辞書形式で返す。
        """
        pass
