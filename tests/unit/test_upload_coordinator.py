"""Tests for the stream upload coordinator."""
import asyncio

import pytest

from s3form import (
    S3Storage,
    AUTO_CONTENT_TYPE,
    ContentResolutionError,
    KeyResolutionError,
    UploadError,
    IncomingFile,
    UploadState,
)
from s3form.core.options import OptionValidator
from s3form.core.upload import StreamUploadCoordinator


def incoming(stream, field_name='image', original_name='file.bin'):
    return IncomingFile(field_name=field_name, original_name=original_name, stream=stream)


class TestStreamUploadCoordinator:
    """Test suite for StreamUploadCoordinator."""
    
    def _coordinator(self, client, **options):
        options = OptionValidator().validate({'client': client, 'bucket': 'test', **options})
        return StreamUploadCoordinator(options)
    
    @pytest.mark.asyncio
    async def test_uploads_stream(self, client, make_stream):
        """Test bytes are forwarded in order and counted."""
        data = bytes(range(256)) * 10
        coordinator = self._coordinator(client, key=lambda request, file: 'k')
        
        result = await coordinator.run(None, incoming(make_stream(data, 100)))
        
        assert result.size == len(data)
        assert client.objects[('test', 'k')] == data
        assert client.calls[0] == 'create_upload'
        assert client.calls[-1] == 'complete_upload'
        assert client.calls.count('write_chunk') == 26
        assert coordinator.session.state is UploadState.COMPLETED
        assert coordinator.session.bytes_written == len(data)
    
    @pytest.mark.asyncio
    async def test_empty_stream(self, client, make_stream):
        """Test empty files complete with size 0."""
        result = await self._coordinator(client).run(None, incoming(make_stream(b'')))
        
        assert result.size == 0
        assert 'write_chunk' not in client.calls
        assert client.objects[('test', result.key)] == b''
    
    @pytest.mark.asyncio
    async def test_content_type_passed_to_initiate(self, client, make_stream, png_bytes):
        """Test resolved content type is registered with the upload."""
        coordinator = self._coordinator(client, content_type=AUTO_CONTENT_TYPE)
        
        result = await coordinator.run(None, incoming(make_stream(png_bytes)))
        
        assert client.uploads[0].params.content_type == 'image/png'
        assert result.content_type == 'image/png'
        assert coordinator.session.content_type == 'image/png'
    
    @pytest.mark.asyncio
    async def test_runs_once(self, client, make_stream):
        """Test a coordinator cannot be reused."""
        coordinator = self._coordinator(client)
        await coordinator.run(None, incoming(make_stream(b'a')))
        
        with pytest.raises(RuntimeError):
            await coordinator.run(None, incoming(make_stream(b'b')))
    
    @pytest.mark.asyncio
    async def test_key_failure_before_network(self, client, make_stream):
        """Test key failure aborts before initiate."""
        def key(request, file):
            raise RuntimeError("no key")
        
        coordinator = self._coordinator(client, key=key)
        
        with pytest.raises(KeyResolutionError):
            await coordinator.run(None, incoming(make_stream(b'data')))
        
        assert client.calls == []
        assert coordinator.session.state is UploadState.FAILED
    
    @pytest.mark.asyncio
    async def test_content_type_failure_before_network(self, client, make_stream):
        """Test content-type failure aborts before initiate."""
        async def content_type(request, file):
            raise RuntimeError("no type")
        
        coordinator = self._coordinator(client, content_type=content_type)
        
        with pytest.raises(ContentResolutionError):
            await coordinator.run(None, incoming(make_stream(b'data')))
        
        assert client.calls == []
    
    @pytest.mark.asyncio
    async def test_stream_failure_while_sniffing(self, client):
        """Test stream failure before initiate is an UploadError."""
        async def broken():
            raise ValueError("malformed part")
            yield b''
        
        coordinator = self._coordinator(client, content_type=AUTO_CONTENT_TYPE)
        
        with pytest.raises(UploadError) as exc_info:
            await coordinator.run(None, incoming(broken()))
        
        assert isinstance(exc_info.value.cause, ValueError)
        assert client.calls == []
    
    @pytest.mark.asyncio
    async def test_initiate_failure(self, make_client, make_stream):
        """Test initiate failure is wrapped without an abort."""
        client = make_client(fail_on={'create_upload'})
        
        with pytest.raises(UploadError) as exc_info:
            await self._coordinator(client).run(None, incoming(make_stream(b'data')))
        
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert 'abort_upload' not in client.calls
    
    @pytest.mark.asyncio
    async def test_stream_error_mid_upload_aborts(self, client):
        """Test parser failure mid-stream aborts the remote upload."""
        async def truncated():
            yield b'first chunk'
            raise ValueError("unexpected end of multipart body")
        
        coordinator = self._coordinator(client, key=lambda request, file: 'k')
        
        with pytest.raises(UploadError) as exc_info:
            await coordinator.run(None, incoming(truncated()))
        
        assert isinstance(exc_info.value.cause, ValueError)
        assert exc_info.value.key == 'k'
        assert exc_info.value.bucket == 'test'
        assert client.aborted_keys == ['k']
        assert client.objects == {}
        assert coordinator.session.state is UploadState.ABORTED
        assert coordinator.session.bytes_written == len(b'first chunk')
    
    @pytest.mark.asyncio
    async def test_write_failure_aborts(self, make_client, make_stream):
        """Test storage failure mid-stream aborts and stops reading."""
        client = make_client(fail_after_chunks=2)
        pulled = []
        
        async def stream():
            for i in range(10):
                pulled.append(i)
                yield b'x' * 8
        
        with pytest.raises(UploadError):
            await self._coordinator(client).run(None, incoming(stream()))
        
        assert 'abort_upload' in client.calls
        assert 'complete_upload' not in client.calls
        assert pulled == [0, 1, 2]
    
    @pytest.mark.asyncio
    async def test_finalize_failure_aborts(self, make_client, make_stream):
        """Test finalize failure aborts the upload."""
        client = make_client(fail_on={'complete_upload'})
        
        with pytest.raises(UploadError):
            await self._coordinator(client).run(None, incoming(make_stream(b'data')))
        
        assert client.calls[-1] == 'abort_upload'
    
    @pytest.mark.asyncio
    async def test_abort_failure_keeps_original_error(self, make_client):
        """Test abort errors are logged, not raised."""
        client = make_client(fail_on={'abort_upload'})
        
        async def truncated():
            yield b'data'
            raise ValueError("client went away")
        
        with pytest.raises(UploadError) as exc_info:
            await self._coordinator(client).run(None, incoming(truncated()))
        
        assert isinstance(exc_info.value.cause, ValueError)
    
    @pytest.mark.asyncio
    async def test_backpressure(self, client):
        """Test the stream is not read while the client is busy."""
        client.write_gate = asyncio.Event()
        pulled = []
        
        async def stream():
            for i in range(5):
                pulled.append(i)
                yield b'chunk'
        
        task = asyncio.ensure_future(self._coordinator(client).run(None, incoming(stream())))
        for _ in range(10):
            await asyncio.sleep(0)
        
        # First chunk is held by the blocked write, nothing else is read
        assert pulled == [0]
        
        client.write_gate.set()
        result = await task
        
        assert pulled == [0, 1, 2, 3, 4]
        assert result.size == 25
    
    @pytest.mark.asyncio
    async def test_cancellation_aborts(self, client):
        """Test external cancellation aborts the remote upload."""
        never = asyncio.Event()
        
        async def stalled():
            yield b'first'
            await never.wait()
            yield b'never'
        
        coordinator = self._coordinator(client, key=lambda request, file: 'stalled')
        task = asyncio.ensure_future(coordinator.run(None, incoming(stalled())))
        for _ in range(10):
            await asyncio.sleep(0)
        
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        
        assert client.aborted_keys == ['stalled']
        assert coordinator.session.state is UploadState.ABORTED
    
    @pytest.mark.asyncio
    async def test_cancellation_while_initiating_aborts(self, client, make_stream):
        """Test cancelling a slow initiate still aborts the upload it creates."""
        client.create_gate = asyncio.Event()
        coordinator = self._coordinator(client, key=lambda request, file: 'slow-initiate')
        task = asyncio.ensure_future(coordinator.run(None, incoming(make_stream(b'data'))))
        for _ in range(10):
            await asyncio.sleep(0)
        assert client.calls == ['create_upload']
        
        task.cancel()
        for _ in range(10):
            await asyncio.sleep(0)
        client.create_gate.set()
        
        with pytest.raises(asyncio.CancelledError):
            await task
        
        assert client.aborted_keys == ['slow-initiate']
        assert 'write_chunk' not in client.calls
        assert coordinator.session.state is UploadState.ABORTED
    
    @pytest.mark.asyncio
    async def test_cancellation_while_finalizing_removes_object(self, client, make_stream):
        """Test cancelling a slow finalize deletes the stored object."""
        client.complete_gate = asyncio.Event()
        coordinator = self._coordinator(client, key=lambda request, file: 'slow-finalize')
        task = asyncio.ensure_future(coordinator.run(None, incoming(make_stream(b'data'))))
        for _ in range(50):
            await asyncio.sleep(0)
        assert client.calls[-1] == 'complete_upload'
        
        task.cancel()
        for _ in range(10):
            await asyncio.sleep(0)
        client.complete_gate.set()
        
        with pytest.raises(asyncio.CancelledError):
            await task
        
        assert client.calls[-1] == 'delete_object'
        assert client.objects == {}
        assert coordinator.session.state is UploadState.ABORTED
    
    @pytest.mark.asyncio
    async def test_cancelled_finalize_keeps_session_removable(self, make_client, make_stream):
        """Test a failed delete after cancellation leaves a removable session."""
        client = make_client(fail_on={'delete_object'})
        client.complete_gate = asyncio.Event()
        coordinator = self._coordinator(client, key=lambda request, file: 'kept')
        task = asyncio.ensure_future(coordinator.run(None, incoming(make_stream(b'data'))))
        for _ in range(50):
            await asyncio.sleep(0)
        
        task.cancel()
        for _ in range(10):
            await asyncio.sleep(0)
        client.complete_gate.set()
        
        with pytest.raises(asyncio.CancelledError):
            await task
        
        assert client.objects[('test', 'kept')] == b'data'
        assert coordinator.session.state is UploadState.COMPLETED
    
    @pytest.mark.asyncio
    async def test_progress_callback(self, client, make_stream):
        """Test progress is reported after each chunk."""
        seen = []
        options = OptionValidator().validate({'client': client, 'bucket': 'test'})
        coordinator = StreamUploadCoordinator(
            options,
            progress_callback=lambda p: seen.append((p.chunks_written, p.bytes_written))
        )
        
        await coordinator.run(None, incoming(make_stream(b'a' * 40, 16)))
        
        assert seen == [(1, 16), (2, 32), (3, 40)]


class TestConcurrentSessions:
    """Test suite for independent sessions sharing one engine."""
    
    @pytest.mark.asyncio
    async def test_two_fields_do_not_mix(self, make_client, make_stream, png_bytes, svg_bytes):
        """Test interleaved uploads keep their own key, type and size."""
        client = make_client(write_delay=0.001)
        storage = S3Storage(
            client=client,
            bucket='test',
            content_type=AUTO_CONTENT_TYPE,
            key=lambda request, file: f"{file.field_name}/{file.original_name}"
        )
        
        png, svg = await asyncio.gather(
            storage.handle_file(None, incoming(make_stream(png_bytes, 16), 'image', 'ffffff.png')),
            storage.handle_file(None, incoming(make_stream(svg_bytes, 50), 'icon', 'test.svg')),
        )
        
        assert (png.key, png.content_type, png.size) == ('image/ffffff.png', 'image/png', 68)
        assert (svg.key, svg.content_type, svg.size) == ('icon/test.svg', 'image/svg+xml', 100)
        assert client.objects[('test', 'image/ffffff.png')] == png_bytes
        assert client.objects[('test', 'icon/test.svg')] == svg_bytes
    
    @pytest.mark.asyncio
    async def test_failure_does_not_affect_other_upload(self, client, make_stream, png_bytes):
        """Test one failing field leaves the other upload intact."""
        storage = S3Storage(
            client=client,
            bucket='test',
            key=lambda request, file: file.field_name
        )
        
        async def truncated():
            yield b'partial'
            await asyncio.sleep(0)
            raise ValueError("client went away")
        
        results = await asyncio.gather(
            storage.handle_file(None, incoming(truncated(), 'broken')),
            storage.handle_file(None, incoming(make_stream(png_bytes), 'image')),
            return_exceptions=True
        )
        
        assert isinstance(results[0], UploadError)
        assert results[1].size == 68
        assert client.aborted_keys == ['broken']
        assert ('test', 'image') in client.objects
