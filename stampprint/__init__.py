"""StampPrint - unattended print agent for order-based document printing.

StampPrint runs on a fixed device (e.g. a Raspberry Pi next to the printer)
and polls the print-management service for work. Orders reference a stored
PDF and a list of per-copy serials; each copy is stamped with a QR code
carrying its serial before it is submitted to CUPS.

Usage:
    stampprint configure
    stampprint start
    stampprint status
    stampprint test
"""

__version__ = "0.1.0"
