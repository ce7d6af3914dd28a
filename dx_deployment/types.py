import click


class AddressIndex(click.ParamType):
    """A position in the token address list."""

    name = "index"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            index = value
        else:
            try:
                index = int(str(value).strip(), 10)
            except ValueError:
                self.fail(f"'{value}' is not a position in the address list", param, ctx)
        if index < 0:
            self.fail(f"address list positions start at 0, got {index}", param, ctx)
        return index
