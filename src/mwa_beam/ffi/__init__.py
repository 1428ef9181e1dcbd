# See the LICENSE file at the top-level directory of this distribution.

"""C-style interface to the beam library.

Functions return status codes, pass beam objects as opaque integer
handles and keep the message of the last error for later retrieval.
"""

from ..utility import last_error_length, last_error_message
from .analytic import (
    analytic_calc_jones,
    analytic_calc_jones_array,
    analytic_calc_jones_gpu,
    analytic_calc_jones_gpu_device,
    analytic_calc_jones_gpu_device_inner,
    free_analytic_beam,
    free_gpu_analytic_beam,
    get_analytic_device_freq_map,
    get_analytic_device_tile_map,
    get_analytic_freq_map,
    get_analytic_tile_map,
    get_num_unique_analytic_freqs,
    get_num_unique_analytic_tiles,
    new_analytic_beam,
    new_gpu_analytic_beam,
)
from .common import (
    free_device_buffer,
    get_num_unique_freqs,
    get_num_unique_tiles,
)
from .fee import (
    fee_calc_jones,
    fee_calc_jones_array,
    fee_calc_jones_gpu,
    fee_calc_jones_gpu_device,
    fee_calc_jones_gpu_device_inner,
    fee_closest_freq,
    free_fee_beam,
    free_gpu_fee_beam,
    get_fee_beam_freqs,
    get_fee_device_freq_map,
    get_fee_device_tile_map,
    get_fee_freq_map,
    get_fee_tile_map,
    get_num_unique_fee_freqs,
    get_num_unique_fee_tiles,
    new_fee_beam,
    new_fee_beam_from_env,
    new_gpu_fee_beam,
)
