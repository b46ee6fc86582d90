from dataclasses import dataclass

@dataclass
class HeatOptions:
    t_coef : float = 1.0            # t = t_coef * (mean edge length)^2
    laplacian_shift : float = 1e-8  # added to diag(L) before factoring, L alone is singular
    normalize_eps : float = 1e-12   # floor for |grad u| on faces where u is flat
