import pytest

from perlin.blended import BlendedNoise
from perlin.double_perlin import DoublePerlin, NoiseParameters
from perlin.noise_3d import Perlin3D, floor_i32
from perlin.octave import OctavePerlin, calculate_amplitudes
from perlin.rng import Xoroshiro128PlusPlus


def _perlin_111():
    rng = Xoroshiro128PlusPlus.from_seed(111)
    assert rng.next_i32() == -1467508761
    return Perlin3D(rng)


def test_perlin3d_origin_and_permutation():
    p = _perlin_111()
    assert p.x_origin == 48.58072036717974
    assert p.y_origin == 110.73235882678037
    assert p.z_origin == 65.26438852860176
    assert p.perm[:8] == (159, 113, 41, 143, 203, 123, 95, 177)
    assert p.perm[-3:] == (144, 225, 5)
    assert sorted(p.perm) == list(range(256))


def test_perlin3d_sample_without_y_scale():
    p = _perlin_111()
    cases = [
        ((-3.134738528791615e8, 5.676610095659718e7, 2.011711832498507e8), 0.38582139614602945),
        ((-1369026.560586418, 3.957311252810864e8, 6.797037355570006e8), 0.15777501333157193),
        ((6.439373693833767e8, -3.36218773041759e8, -3.265494249695775e8), -0.2806135912409497),
    ]
    for (x, y, z), expected in cases:
        assert p.sample(x, y, z) == pytest.approx(expected, abs=1e-12)


def test_perlin3d_deterministic_for_seed():
    a = Perlin3D(Xoroshiro128PlusPlus.from_seed(123))
    b = Perlin3D(Xoroshiro128PlusPlus.from_seed(123))
    c = Perlin3D(Xoroshiro128PlusPlus.from_seed(124))
    pts = [(0.1, 0.2, 0.3), (1.25, 2.75, 0.5), (10.5, 9.0, 1.0)]
    assert [a.sample(*p) for p in pts] == [b.sample(*p) for p in pts]
    assert [a.sample(*p) for p in pts] != [c.sample(*p) for p in pts]


def test_floor_i32_saturates_like_an_int_cast():
    assert floor_i32(-0.5) == -1
    assert floor_i32(3.9) == 3
    assert floor_i32(float("nan")) == 0
    assert floor_i32(1e12) == (1 << 31) - 1


def test_calculate_amplitudes():
    assert calculate_amplitudes([1, 2, 3]) == (1, [1.0, 1.0, 1.0])
    assert calculate_amplitudes([0]) == (0, [1.0])
    first, amps = calculate_amplitudes([-3, -1])
    assert first == -3
    assert amps == [1.0, 0.0, 1.0]
    with pytest.raises(ValueError):
        calculate_amplitudes([])


def test_octave_perlin_split_construction():
    rng = Xoroshiro128PlusPlus.from_seed(513513513)
    assert rng.next_i32() == 404174895
    start, amps = calculate_amplitudes([1, 2, 3])
    sampler = OctavePerlin(rng, start, amps)

    assert sampler.first_octave == 1
    assert sampler._persistences[0] == 0.5714285714285714
    assert sampler._lacunarities[0] == 2.0
    assert sampler.max_value == 2.0

    origins = [
        (210.19539348148294, 203.08258445596215, 45.29925114984684),
        (24.841250686920773, 181.62678157390076, 69.49871248131629),
        (21.65886467061867, 97.80131502331685, 225.9273676334467),
    ]
    for octave, (x, y, z) in zip(sampler.samplers, origins):
        assert (octave.x_origin, octave.y_origin, octave.z_origin) == (x, y, z)


def test_octave_perlin_sample():
    rng = Xoroshiro128PlusPlus.from_seed(513513513)
    rng.next_i32()
    start, amps = calculate_amplitudes([1, 2, 3])
    sampler = OctavePerlin(rng, start, amps)
    cases = [
        ((1.4633897801218182e8, 3.360929121402108e8, -1.7376184515043163e8), -0.16510137639683028),
        ((-3.952093942501234e8, -8.149682915016855e7, 2.0761709535397574e8), -0.19865227457826365),
        ((1.0603518812861493e8, -1.6028050039630303e8, 9.621510690305333e7), -0.16157548492944798),
    ]
    for (x, y, z), expected in cases:
        assert sampler.sample(x, y, z) == pytest.approx(expected, abs=1e-12)


def test_legacy_octaves_share_one_stream():
    splitter = Xoroshiro128PlusPlus.from_seed(0).next_splitter()
    assert splitter.split_id("terrain").next_i32() == 1374487555

    start, amps = calculate_amplitudes(range(-15, 1))
    sampler = OctavePerlin(splitter.split_id("terrain"), start, amps, legacy=True)
    octave = sampler.octave(0)
    assert octave.x_origin == 18.223354299069797
    assert octave.y_origin == 93.99298907803595
    assert octave.z_origin == 184.48198875745823


def test_double_perlin_sample():
    rng = Xoroshiro128PlusPlus.from_seed(5)
    assert rng.next_i32() == -1678727252
    sampler = DoublePerlin(rng, NoiseParameters(1, (2.0, 4.0)))
    cases = [
        ((-2.4823401687190732e8, 1.6909869132832196e8, 1.0510057123823991e8), -0.09627881756376819),
        ((1.2971355215791291e8, -3.614855223614046e8, 1.9997149869463342e8), 0.4412466810560897),
        ((-1.9858224577678584e7, 2.5103843334053648e8, 2.253841390457064e8), -1.3086196098510068),
    ]
    for (x, y, z), expected in cases:
        assert sampler.sample(x, y, z) == pytest.approx(expected, abs=1e-12)


def test_noise_parameters_from_json():
    params = NoiseParameters.from_json({"firstOctave": -7, "amplitudes": [1, 1, 0.5]})
    assert params == NoiseParameters(-7, (1.0, 1.0, 0.5))


def test_blended_noise_bound_follows_its_lower_octaves():
    noise = BlendedNoise.unseeded(
        xz_scale=0.25, y_scale=0.125, xz_factor=80.0, y_factor=160.0, smear_scale_multiplier=8.0
    )
    # Sixteen full octaves sum their persistences to exactly one.
    assert noise.max_value == pytest.approx(684.412 * 0.125 + 2.0, rel=1e-12)
    assert noise.max_value == noise.lower.total_amplitude(noise.y_scale_scaled + 2.0)
    for x, y, z in [(0, 0, 0), (17, -40, 3), (-250, 100, 999)]:
        assert abs(noise.sample(x, y, z)) <= noise.max_value
