"""RAK811 driver session.

The Rak811 class owns the serial transport for the life of the process and
exposes one method per module command. Commands are issued strictly one at
a time; callers sharing a session across threads must serialize access.
"""

from typing import Optional, Union

from rak811.config.config_models import Config, LogLevel
from rak811.config.config_manager import ConfigManager
from rak811.core.command_dispatcher import CommandDispatcher, ReplyShape
from rak811.core.frame_codec import Command
from rak811.core.hard_reset import GpioResetPin, ResetPin, hard_reset
from rak811.core.serial_handler import SerialHandler
from rak811.core.state_machines import (
    JoinOperation,
    JoinState,
    SendOperation,
    SendState,
    TwoPhaseOperation
)
from rak811.logging.communication_logger import CommunicationLogger


class Rak811:
    """Session handle for one RAK811 module.

    Example:
        >>> with Rak811() as lora:
        ...     lora.version()
        ...     lora.join_otaa()
        ...     lora.send(2, b"\\x7f")
        'OK2.0.3.0'
        'at+recv=3,0,0'
        'at+recv=2,0,0'
    """

    def __init__(self,
                 config: Optional[Config] = None,
                 handler: Optional[SerialHandler] = None,
                 logger: Optional[CommunicationLogger] = None,
                 reset_pin: Optional[ResetPin] = None):
        """Open the transport and prepare the protocol engine.

        Args:
            config: Driver configuration (default: ConfigManager.load(), which
                reads ./rak811.yaml or ~/.rak811/config.yaml and RAK811_* overrides)
            handler: Pre-built SerialHandler (default: built from config.serial)
            logger: CommunicationLogger (default: built from config.logging)
            reset_pin: Pin used by hard_reset (default: GPIO pin from config,
                created on first use)

        Raises:
            TransportError: The serial port could not be opened
            ConfigurationError: The loaded configuration is invalid
        """
        self.config = config or ConfigManager.load()
        self._owns_logger = logger is None
        self.logger = logger if logger is not None else CommunicationLogger.from_config(self.config.logging)
        if self.logger is None and self.config.driver.debug:
            self.logger = self._console_logger()

        serial_config = self.config.serial
        self.handler = handler or SerialHandler(
            port=serial_config.port,
            baud_rate=serial_config.baud_rate,
            timeout=serial_config.timeout,
            parity=serial_config.parity,
            stop_bits=serial_config.stop_bits,
            byte_size=serial_config.byte_size,
            logger=self.logger
        )
        self.handler.open()

        self.dispatcher = CommandDispatcher(
            self.handler,
            timeout=serial_config.timeout,
            event_timeout=self.config.driver.event_timeout,
            logger=self.logger,
            debug=self.config.driver.debug
        )
        self._reset_pin = reset_pin
        self.last_join_state: Optional[JoinState] = None
        self.last_send_state: Optional[SendState] = None

    @property
    def debug(self) -> bool:
        return self.dispatcher.debug

    def set_debug(self, enabled: bool) -> None:
        """Turn raw traffic tracing on or off for this session.

        Traces are recorded whatever the logger's level. Without a logger,
        turning debug on attaches one that prints to stderr.
        """
        if enabled and self.logger is None:
            self.logger = self._console_logger()
            if self.handler.logger is None:
                self.handler.logger = self.logger
            self.dispatcher.logger = self.logger
            self.dispatcher.reader.logger = self.logger
        self.dispatcher.debug = enabled

    @staticmethod
    def _console_logger() -> CommunicationLogger:
        return CommunicationLogger(log_level=LogLevel.DEBUG, enable_console=True)

    def _tx(self, name: str, args: Optional[object] = None, expected_lines: int = 1) -> str:
        command = Command(name, None if args is None else str(args))
        return self.dispatcher.execute(command, ReplyShape.SINGLE_LINE, expected_lines)

    def _run(self, operation: TwoPhaseOperation) -> str:
        try:
            event = operation.run(self.dispatcher)
        finally:
            if isinstance(operation, JoinOperation):
                self.last_join_state = operation.state
            else:
                self.last_send_state = operation.state
        if self.logger:
            self.logger.log_event(port=self.handler.port, line=operation.line,
                                  event_code=event.code, description=event.description)
        return operation.line

    #
    # System commands
    #

    def version(self) -> str:
        """Get the firmware version."""
        return self._tx("version")

    def sleep(self) -> str:
        """Put the module to sleep."""
        return self._tx("sleep")

    def reset(self, mode: int) -> str:
        """Reset the module (0) or the LoRaWAN stack (1)."""
        return self._tx("reset", mode)

    def hard_reset(self) -> str:
        """Pulse the reset pin and return the boot banner.

        The documented recovery after a ResponseTimeoutError.
        """
        if self._reset_pin is None:
            self._reset_pin = GpioResetPin(self.config.driver.reset_pin)
        return hard_reset(
            self._reset_pin,
            self.handler,
            low_time=self.config.driver.reset_low_time,
            boot_time=self.config.driver.reset_boot_time,
            logger=self.logger
        )

    def reload(self) -> str:
        """Restore LoRaWAN and LoRaP2P default configuration."""
        return self._tx("reload")

    def get_mode(self) -> str:
        return self._tx("mode")

    def set_mode(self, mode: int) -> str:
        """Select LoRaWAN (0) or LoRaP2P (1) mode."""
        return self._tx("mode", mode)

    def get_recv_ex(self) -> str:
        return self._tx("recv_ex")

    def set_recv_ex(self, mode: int) -> str:
        """Enable (0) or disable (1) RSSI/SNR reporting on receive."""
        return self._tx("recv_ex", mode)

    #
    # LoRaWAN commands
    #

    def set_config(self, config: str) -> str:
        """Write LoRaWAN parameters, e.g. 'app_eui:39d7119f920f7952&app_key:...'."""
        return self._tx("set_config", config)

    def get_config(self, key: str) -> str:
        return self._tx("get_config", key)

    def get_band(self) -> str:
        return self._tx("band")

    def set_band(self, band: str) -> str:
        return self._tx("band", band)

    def join_otaa(self) -> str:
        """Join in OTAA mode and return the join event line.

        No other command may be issued until this returns.

        Raises:
            ProtocolError: Module rejected the join request
            ResponseTimeoutError: No gateway answer (event 6) or no reply
            UnexpectedResponseError: Any other line while waiting
        """
        return self._run(JoinOperation("otaa"))

    def join_abp(self) -> str:
        """Join in ABP mode and return the join event line."""
        return self._run(JoinOperation("abp"))

    def signal(self) -> str:
        """RSSI and SNR of the last received packet."""
        return self._tx("signal")

    def get_data_rate(self) -> str:
        return self._tx("dr")

    def set_data_rate(self, data_rate: Union[int, str]) -> str:
        return self._tx("dr", data_rate)

    def get_link_cnt(self) -> str:
        """Uplink and downlink frame counters."""
        return self._tx("link_cnt")

    def set_link_cnt(self, uplink_cnt: int, downlink_cnt: int) -> str:
        return self._tx("link_cnt", f"{uplink_cnt},{downlink_cnt}")

    def get_abp_info(self) -> str:
        return self._tx("abp_info")

    def send(self, port: int, payload: Union[bytes, bytearray, str], confirm: bool = False) -> str:
        """Send an uplink and return the transmission event line.

        Args:
            port: LoRaWAN application port
            payload: Raw bytes or a hex string
            confirm: Request a confirmed (ACKed) uplink

        Raises:
            ProtocolError: Module rejected the send (e.g. -5, not joined)
            ResponseTimeoutError: TX timeout (event 5) or no reply
            UnexpectedResponseError: Event does not match the confirm flag
        """
        return self._run(SendOperation(port, payload, confirm=confirm))

    def recv(self, data: str) -> str:
        return self._tx("recv", data)

    #
    # LoRaP2P commands
    #

    def get_rf_config(self) -> str:
        return self._tx("rf_config")

    def set_rf_config(self, parameters: str) -> str:
        """Set P2P RF parameters: 'freq,sf,bw,cr,prlen,pwr'."""
        return self._tx("rf_config", parameters)

    def txc(self, parameters: str) -> str:
        """Send a LoRaP2P message: 'cnt,interval,data'."""
        return self._tx("txc", parameters)

    def rxc(self, enable: int) -> str:
        return self._tx("rxc", enable)

    def tx_stop(self) -> str:
        return self._tx("tx_stop")

    def rx_stop(self) -> str:
        return self._tx("rx_stop")

    #
    # Radio commands
    #

    def get_radio_status(self) -> str:
        """Radio statistics."""
        return self._tx("status")

    def clear_radio_status(self) -> str:
        return self._tx("status", 0)

    #
    # Peripheral commands
    #

    def get_uart(self) -> str:
        return self._tx("uart")

    def set_uart(self, configuration: str) -> str:
        return self._tx("uart", configuration)

    def close(self) -> None:
        """Release the serial port, the reset pin and an owned logger."""
        try:
            self.handler.close()
        finally:
            if self._reset_pin is not None:
                self._reset_pin.close()
            if self._owns_logger and self.logger:
                self.logger.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"Rak811(port='{self.handler.port}', debug={self.debug})"
