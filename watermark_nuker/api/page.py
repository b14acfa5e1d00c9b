"""Minimal browser page driving the session endpoints (styling intentionally bare)."""

INDEX_HTML = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Watermark Nuker</title>
<style>
  #drop { border: 2px dashed #888; padding: 2rem; text-align: center; }
  #drop.over { border-color: #4fb7a0; }
  .pair { display: flex; gap: 1rem; }
  .pair img { max-width: 48%; }
</style>
</head>
<body>
<h1>Watermark Nuker</h1>
<div id="drop">Drop an image here or <input type="file" id="picker" accept="image/*"></div>
<p id="info"></p>
<input type="text" id="hint" placeholder="Hint: e.g. 'remove bottom-right logo, keep central text'">
<button id="run" disabled>Nuke It!</button>
<button id="reset" disabled>Start Over</button>
<p id="status"></p>
<div class="pair"><img id="before" alt=""><img id="after" alt=""></div>
<a id="download" hidden>Download</a>
<script>
let sid = null;
const $ = (id) => document.getElementById(id);

function render(s) {
  $("info").textContent = s.source ? s.source.name + " (" + s.source.size_mb.toFixed(2) + " MB)" : "";
  $("status").textContent = s.message || (s.status === "error" ? "Something went wrong." : "");
  $("before").src = s.preview_url || "";
  $("after").src = s.result_url || "";
  $("run").disabled = !s.source || s.status === "processing" || s.status === "success";
  $("reset").disabled = !s.source || s.status === "processing";
  $("hint").disabled = s.status === "processing";
  $("download").hidden = !s.result_url;
}

async function api(path, opts) {
  const res = await fetch("/api/sessions/" + sid + path, opts);
  const body = await res.json();
  if (!res.ok) { alert(body.error); return null; }
  render(body);
  return body;
}

async function upload(file, origin) {
  const form = new FormData();
  form.append("file", file);
  form.append("origin", origin);
  await api("/image", { method: "POST", body: form });
  $("hint").value = "";
}

$("picker").onchange = (e) => e.target.files[0] && upload(e.target.files[0], "picker");
$("drop").ondragover = (e) => { e.preventDefault(); $("drop").classList.add("over"); };
$("drop").ondragleave = (e) => { e.preventDefault(); $("drop").classList.remove("over"); };
$("drop").ondrop = (e) => {
  e.preventDefault();
  $("drop").classList.remove("over");
  if (e.dataTransfer.files[0]) upload(e.dataTransfer.files[0], "drop");
};
$("run").onclick = () => {
  $("status").textContent = "Nuking Watermark...";
  $("run").disabled = $("reset").disabled = $("hint").disabled = true;
  api("/remove", {
    method: "POST",
    headers: { "Content-Type": "application/json" },
    body: JSON.stringify({ instructions: $("hint").value }),
  });
};
$("hint").onkeydown = (e) => e.key === "Enter" && !$("run").disabled && $("run").onclick();
$("reset").onclick = () => api("/reset", { method: "POST" });
$("download").onclick = async (e) => {
  e.preventDefault();
  try {
    const res = await fetch("/api/sessions/" + sid + "/download");
    if (!res.ok || !res.headers.get("content-type").startsWith("image/")) throw new Error("not an image");
    const url = URL.createObjectURL(await res.blob());
    const link = document.createElement("a");
    link.href = url;
    link.download = "watermark_removed.png";
    link.click();
    URL.revokeObjectURL(url);
  } catch (err) {
    console.error("Download failed, falling back to result URL", err);
    const link = document.createElement("a");
    link.href = $("after").src;
    link.download = "watermark_removed.png";
    link.target = "_blank";
    link.click();
  }
};

fetch("/api/sessions", { method: "POST" })
  .then((res) => res.json())
  .then((body) => { sid = body.session_id; render(body.state); });

window.addEventListener("pagehide", () => {
  if (sid) fetch("/api/sessions/" + sid, { method: "DELETE", keepalive: true });
});
</script>
</body>
</html>
"""
