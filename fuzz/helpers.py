import atheris


class EnhancedDataProvider(atheris.FuzzedDataProvider):
    def ConsumeRandomBytes(self) -> bytes:
        return self.ConsumeBytes(self.ConsumeIntInRange(0, self.remaining_bytes()))

    def ConsumeRandomString(self) -> str:
        return self.ConsumeUnicodeNoSurrogates(self.ConsumeIntInRange(0, self.remaining_bytes()))

    def ConsumeHeaders(self) -> dict:
        # Mostly well-formed Content-Type headers, so the body parser gets
        # exercised rather than the header checks.
        name = self.PickValueInList(["Content-Type", "content-type", "CONTENT-TYPE", "X-Other"])
        value = self.PickValueInList(
            [
                "multipart/form-data; boundary=boundary",
                'multipart/form-data; boundary="boundary"',
                "multipart/form-data",
                "application/json",
                self.ConsumeUnicodeNoSurrogates(64),
            ]
        )
        return {name: value}
