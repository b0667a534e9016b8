import io
import os
import datetime
import hashlib
import pytest

from sigv4func import RequestDescriptor, canonicalize, InvalidRequest, UnsupportedEncoding, ClockError
from sigv4func.canonical import canonical_uri, canonical_query

#################################################
### Parameters

timestamp = datetime.datetime(2015, 8, 30, 12, 36, 0, tzinfo=datetime.timezone.utc)
amz_date = '20150830T123600Z'
empty_hash = 'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'

################################################
### Tests


def test_get_vanilla_canonical_request():
    request = RequestDescriptor('get', 'https://example.amazonaws.com/')
    canonical, content_hash = canonicalize(request, timestamp=timestamp)

    assert canonical.text == '\n'.join([
        'GET',
        '/',
        '',
        'host:example.amazonaws.com',
        'x-amz-date:20150830T123600Z',
        '',
        'host;x-amz-date',
        empty_hash,
        ])
    assert content_hash == empty_hash
    assert canonical.hexdigest() == 'bb579772317eb040ac9ed261061d46c1f17a8133879d6129b6e1c25292927e63'


def test_header_order_invariance():
    r1 = RequestDescriptor('POST', 'https://example.amazonaws.com/a?b=2&a=1', headers={'X-Amz-Date': amz_date, 'Content-Type': 'text/plain', 'My-Header': 'x'}, body=b'data')
    r2 = RequestDescriptor('POST', 'https://example.amazonaws.com/a?a=1&b=2', headers=[('my-header', 'x'), ('content-type', 'text/plain'), ('x-amz-date', amz_date)], body=b'data')

    c1, _ = canonicalize(r1)
    c2, _ = canonicalize(r2)

    assert c1 == c2
    assert c1.encode() == c2.encode()
    assert c1.signed_headers == 'content-type;host;my-header;x-amz-date'


def test_query_sorting_and_encoding():
    r1 = RequestDescriptor('GET', 'https://example.amazonaws.com/', params={'b': '2', 'a': '1'})
    r2 = RequestDescriptor('GET', 'https://example.amazonaws.com/', params=[('a', '1'), ('b', '2')])

    c1, _ = canonicalize(r1, timestamp=timestamp)
    c2, _ = canonicalize(r2, timestamp=timestamp)
    assert c1.query == 'a=1&b=2'
    assert c1 == c2

    spaced = RequestDescriptor('GET', 'https://example.amazonaws.com/', params={'q': 'hello world/&='})
    c3, _ = canonicalize(spaced, timestamp=timestamp)
    assert c3.query == 'q=hello%20world%2F%26%3D'


def test_query_edge_cases():
    assert canonical_query([(b'a', b'2'), (b'a', b'1')]) == 'a=1&a=2'
    assert canonical_query([]) == ''

    request = RequestDescriptor('GET', 'https://example.amazonaws.com/bucket?acl&versionId=')
    canonical, _ = canonicalize(request, timestamp=timestamp)
    assert canonical.query == 'acl=&versionId='

    # decoded once, re-encoded once; a plus sign is a literal plus
    request = RequestDescriptor('GET', 'https://example.amazonaws.com/?k=a%20b+c&%7Etilde=%7e')
    canonical, _ = canonicalize(request, timestamp=timestamp)
    assert canonical.query == 'k=a%20b%2Bc&~tilde=~'


def test_canonical_uri():
    assert canonical_uri('') == '/'
    assert canonical_uri('/') == '/'
    assert canonical_uri('/a b/c') == '/a%20b/c'
    assert canonical_uri('/a%20b/c') == '/a%20b/c'
    assert canonical_uri('/a%2Fb') == '/a%2Fb'
    assert canonical_uri('/%7Euser/file.txt') == '/~user/file.txt'
    assert canonical_uri('/ümlaut') == '/%C3%BCmlaut'
    assert canonical_uri('/a//b/') == '/a//b/'


def test_empty_body_hash():
    request = RequestDescriptor('PUT', 'https://example.amazonaws.com/key', headers={'x-amz-date': amz_date})
    canonical, content_hash = canonicalize(request)

    assert content_hash == empty_hash
    assert canonical.payload_hash == empty_hash


def test_body_hashes():
    body = b'{"hello": "world"}'
    expected = hashlib.sha256(body).hexdigest()

    _, h1 = canonicalize(RequestDescriptor('POST', 'https://example.amazonaws.com/', body=body), timestamp=timestamp)
    _, h2 = canonicalize(RequestDescriptor('POST', 'https://example.amazonaws.com/', body=body.decode()), timestamp=timestamp)

    stream = io.BytesIO(b'xx' + body)
    stream.seek(2)
    _, h3 = canonicalize(RequestDescriptor('POST', 'https://example.amazonaws.com/', body=stream), timestamp=timestamp)

    assert h1 == h2 == h3 == expected
    assert stream.tell() == 2

    r, w = os.pipe()
    os.close(w)
    with os.fdopen(r, 'rb') as pipe:
        with pytest.raises(InvalidRequest):
            canonicalize(RequestDescriptor('POST', 'https://example.amazonaws.com/', body=pipe), timestamp=timestamp)

    _, h4 = canonicalize(RequestDescriptor('POST', 'https://example.amazonaws.com/', body=body), timestamp=timestamp, payload_hash='UNSIGNED-PAYLOAD')
    assert h4 == 'UNSIGNED-PAYLOAD'

    header_hash = RequestDescriptor('POST', 'https://example.amazonaws.com/', headers={'X-Amz-Content-SHA256': 'STREAMING-UNSIGNED-PAYLOAD-TRAILER'}, body=body)
    _, h5 = canonicalize(header_hash, timestamp=timestamp)
    assert h5 == 'STREAMING-UNSIGNED-PAYLOAD-TRAILER'


def test_header_values():
    request = RequestDescriptor(
        'GET',
        'https://example.amazonaws.com/',
        headers=[('My-Header1', '  value1  '), ('My-Header2', '"a   b   c"'), ('My-Header3', 'first\r\n  second'), ('my-header4', 'b'), ('My-Header4', 'a'), ('Content-Length', 0)],
        )
    canonical, _ = canonicalize(request, timestamp=timestamp)

    assert canonical.headers == (
        'content-length:0\n'
        'host:example.amazonaws.com\n'
        'my-header1:value1\n'
        'my-header2:"a b c"\n'
        'my-header3:first second\n'
        'my-header4:b,a\n'
        'x-amz-date:20150830T123600Z\n'
        )


def test_host_synthesis():
    c1, _ = canonicalize(RequestDescriptor('GET', 'https://Example.amazonaws.com:443/'), timestamp=timestamp)
    c2, _ = canonicalize(RequestDescriptor('GET', 'http://example.amazonaws.com:8080/'), timestamp=timestamp)
    c3, _ = canonicalize(RequestDescriptor('GET', 'https://example.amazonaws.com/', headers={'Host': 'bucket.example.amazonaws.com'}), timestamp=timestamp)

    assert 'host:example.amazonaws.com\n' in c1.headers
    assert 'host:example.amazonaws.com:8080\n' in c2.headers
    assert 'host:bucket.example.amazonaws.com\n' in c3.headers


def test_authorization_is_never_signed():
    request = RequestDescriptor('GET', 'https://example.amazonaws.com/', headers={'Authorization': 'old'})
    canonical, _ = canonicalize(request, timestamp=timestamp)
    assert 'authorization' not in canonical.signed_headers

    with pytest.raises(InvalidRequest):
        canonicalize(request, ['host', 'x-amz-date', 'authorization'], timestamp)


def test_explicit_signed_headers():
    request = RequestDescriptor('GET', 'https://example.amazonaws.com/', headers={'Content-Type': 'text/plain', 'X-Amz-Security-Token': 'token'})

    canonical, _ = canonicalize(request, 'host;x-amz-date;X-Amz-Security-Token', timestamp)
    assert canonical.signed_headers == 'host;x-amz-date;x-amz-security-token'
    assert 'content-type' not in canonical.headers
    assert canonical.headers.count('\n') == 3

    # the token header must be signed whenever it is sent
    with pytest.raises(InvalidRequest):
        canonicalize(request, ['host', 'x-amz-date', 'content-type'], timestamp)

    with pytest.raises(InvalidRequest):
        canonicalize(request, ['host', 'x-amz-security-token'], timestamp)

    with pytest.raises(InvalidRequest):
        canonicalize(request, ['host', 'x-amz-date', 'x-amz-security-token', 'x-not-there'], timestamp)


def test_invalid_requests():
    for url in ('not a url', 'https:///path', 'ftp://example.com/', 'https://:80/'):
        with pytest.raises(InvalidRequest):
            RequestDescriptor('GET', url)

    with pytest.raises(InvalidRequest):
        RequestDescriptor('GET', b'https://example.com/')

    with pytest.raises(InvalidRequest):
        bad_port = RequestDescriptor('GET', 'https://example.com:port/')
        canonicalize(bad_port, timestamp=timestamp)

    with pytest.raises(InvalidRequest):
        RequestDescriptor('FETCH', 'https://example.com/')

    with pytest.raises(InvalidRequest):
        RequestDescriptor('GET', 'https://example.com/', headers={'Bad Name': 'x'})

    with pytest.raises(InvalidRequest):
        canonicalize(RequestDescriptor('GET', 'https://example.com/', headers={'x-a': 'a\x00b'}), timestamp=timestamp)

    with pytest.raises(InvalidRequest):
        canonicalize({'method': 'GET'}, timestamp=timestamp)


def test_unsupported_encoding():
    with pytest.raises(UnsupportedEncoding):
        RequestDescriptor('GET', 'https://example.com/', headers={'x-a': b'\xff\xfe'})

    with pytest.raises(UnsupportedEncoding):
        RequestDescriptor('GET', 'https://example.com/', headers={'x-a': 'bad \udc80'})

    with pytest.raises(UnsupportedEncoding):
        canonicalize(RequestDescriptor('GET', 'https://example.com/\udc80'), timestamp=timestamp)

    with pytest.raises(UnsupportedEncoding):
        canonicalize(RequestDescriptor('POST', 'https://example.com/', body='\udc80'), timestamp=timestamp)

    # bytes that are valid UTF-8 are fine
    request = RequestDescriptor('GET', 'https://example.com/', headers={'x-a': 'ü'.encode('utf-8')})
    canonical, _ = canonicalize(request, timestamp=timestamp)
    assert 'x-a:ü\n' in canonical.headers


def test_clock_errors():
    request = RequestDescriptor('GET', 'https://example.amazonaws.com/')

    with pytest.raises(ClockError):
        canonicalize(request)

    with pytest.raises(ClockError):
        canonicalize(request, timestamp=datetime.datetime(2015, 8, 30, 12, 36))

    with pytest.raises(ClockError):
        canonicalize(request, timestamp='2015-08-30 12:36:00')

    # an aware timestamp in another zone is converted to UTC
    plus_two = datetime.timezone(datetime.timedelta(hours=2))
    canonical, _ = canonicalize(request, timestamp=datetime.datetime(2015, 8, 30, 14, 36, tzinfo=plus_two))
    assert 'x-amz-date:20150830T123600Z\n' in canonical.headers

    canonical, _ = canonicalize(request, timestamp=amz_date)
    assert 'x-amz-date:20150830T123600Z\n' in canonical.headers
