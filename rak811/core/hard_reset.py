"""Hard reset of the module through its reset pin.

After a timeout the module may be left in an unknown state; pulling the
reset pin low and releasing it restarts the firmware. The boot banner the
module prints afterwards is returned to the caller.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional, TYPE_CHECKING
import time

from rak811.core.frame_codec import split_lines
from rak811.core.serial_handler import SerialHandler

if TYPE_CHECKING:
    from rak811.logging.communication_logger import CommunicationLogger

DEFAULT_RESET_PIN = 17  # BCM numbering, RAK811 pHAT
DEFAULT_LOW_TIME = 0.01
DEFAULT_BOOT_TIME = 2.0


class ResetPin(ABC):
    """Pin-toggle interface used by hard_reset."""

    @abstractmethod
    def set_low(self) -> None:
        """Drive the reset line low (module held in reset)."""
        pass

    @abstractmethod
    def set_high(self) -> None:
        """Release the reset line."""
        pass

    def close(self) -> None:
        pass


class GpioResetPin(ResetPin):
    """Reset pin driven through RPi.GPIO (BCM numbering).

    Requires the ``gpio`` extra; the library is imported on construction so
    the rest of the driver works on hosts without GPIO.
    """

    def __init__(self, pin: int = DEFAULT_RESET_PIN):
        import RPi.GPIO as GPIO

        self._gpio = GPIO
        self.pin = pin
        GPIO.setwarnings(False)
        GPIO.setmode(GPIO.BCM)
        GPIO.setup(pin, GPIO.OUT, initial=GPIO.HIGH)

    def set_low(self) -> None:
        self._gpio.output(self.pin, self._gpio.LOW)

    def set_high(self) -> None:
        self._gpio.output(self.pin, self._gpio.HIGH)

    def close(self) -> None:
        self._gpio.cleanup(self.pin)

    def __repr__(self) -> str:
        return f"GpioResetPin(pin={self.pin})"


def hard_reset(pin: ResetPin,
               handler: SerialHandler,
               low_time: float = DEFAULT_LOW_TIME,
               boot_time: float = DEFAULT_BOOT_TIME,
               logger: Optional['CommunicationLogger'] = None,
               sleep: Callable[[float], None] = time.sleep) -> str:
    """Pulse the reset pin and return the module's boot banner.

    Args:
        pin: Reset pin to toggle
        handler: Open SerialHandler the banner is read from
        low_time: Seconds to hold the pin low
        boot_time: Seconds to wait for the firmware to boot
        logger: Optional CommunicationLogger
        sleep: Delay function (injectable for tests)

    Returns:
        Banner lines joined with newlines ('' if the module printed nothing)

    Raises:
        TransportError: Draining the port failed
    """
    if logger:
        logger.log_port_event(event="Hard reset", port=handler.port,
                              details={"low_time": low_time, "boot_time": boot_time},
                              level="WARNING")
    pin.set_low()
    sleep(low_time)
    pin.set_high()
    sleep(boot_time)

    return "\n".join(split_lines(handler.read_available()))
