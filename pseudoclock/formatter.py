import string


class PseudoclockFormatter(string.Formatter):
    """Custom formatter for pseudoclock.

    Instances of this class can be used to format strings with the following format
    specifiers:
    - :device: to format a string as a device name
    - :output: to format a string as an output name
    - :wait: to format a string as a wait name
    - :time: to format a number of seconds as a time
    - :rate: to format a number of hertz as a sample rate

    It is useful to use this formatter to display objects in the pseudoclock package
    consistently in error messages.

    Example:
    ```
    formatter = PseudoclockFormatter()
    print(formatter.format("{:output} at {:time}", "ao0", 1e-3))

    # Output: output 'ao0' at t = 0.001 s
    ```
    """

    def format_field(self, value, format_spec):
        if format_spec == "device":
            value = f"device '{value}'"
        elif format_spec == "output":
            value = f"output '{value}'"
        elif format_spec == "wait":
            value = f"wait '{value}'"
        elif format_spec == "time":
            if value is None:
                value = "an unknown time"
            else:
                value = f"t = {float(value):.10g} s"
        elif format_spec == "duration":
            value = f"{float(value):.10g} s"
        elif format_spec == "rate":
            value = f"{float(value):.10g} Hz"

        return super().format_field(value, "")


pseudoclock_formatter = PseudoclockFormatter()


def fmt(s: str, *args, **kwargs) -> str:
    return pseudoclock_formatter.format(s, *args, **kwargs)
