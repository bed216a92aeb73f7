import logging
from dataclasses import dataclass, fields
from typing import List, Mapping, Optional, Union

logger = logging.getLogger(__name__)

# Options forwarded as a bare flag when truthy
BOOLEAN_OPTIONS = ('debug', 'force', 'weak', 'install', 'quiet')


@dataclass
class SignOptions:
    """Options forwarded 1:1 to `zsign` as --<name> flags.

    Field order is the order flags appear on the command line. zsign needs
    pkey, prov and password (or cert) to sign, but nothing here enforces it.
    """
    pkey: Optional[str] = None            # private key or .p12
    prov: Optional[str] = None            # .mobileprovision
    cert: Optional[str] = None            # certificate, when pkey is a bare key
    debug: bool = False                   # zsign debug output
    force: bool = False                   # sign folders without the cache
    output: Optional[str] = None          # path of the signed package
    password: Optional[str] = None        # private key password
    bundle_id: Optional[str] = None
    bundle_name: Optional[str] = None
    bundle_version: Optional[str] = None
    entitlements: Optional[str] = None    # entitlements plist
    zip_level: Optional[int] = None       # 0-9, forwarded even when 0
    dylib: Optional[str] = None           # dylib to inject
    weak: bool = False                    # inject dylib as LC_LOAD_WEAK_DYLIB
    install: bool = False                 # install to device after signing
    quiet: bool = False

    @classmethod
    def from_dict(cls, options: Mapping) -> 'SignOptions':
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            logger.warning(f"Ignoring unknown sign options: {', '.join(unknown)}")
        return cls(**{k: v for k, v in options.items() if k in known})

    def to_args(self) -> List[str]:
        args = []
        for field in fields(self):
            value = getattr(self, field.name)
            flag = f"--{field.name}"
            if field.name in BOOLEAN_OPTIONS:
                if value:
                    args.append(flag)
            elif field.name == 'zip_level':
                if value is not None:
                    args.extend([flag, str(value)])
            elif value:
                args.extend([flag, str(value)])
        return args


def build_sign_args(input_package: str,
                    options: Union[SignOptions, Mapping, None] = None) -> List[str]:
    """Build the argument vector for signing input_package"""
    if options is None:
        options = SignOptions()
    elif not isinstance(options, SignOptions):
        options = SignOptions.from_dict(options)

    args = options.to_args()
    args.append(str(input_package))
    return args


def mask_args(args: List[str]) -> List[str]:
    """Copy of args with the --password value hidden, for logging"""
    masked = list(args)
    for i, arg in enumerate(masked[:-1]):
        if arg == '--password':
            masked[i + 1] = '****'
    return masked
